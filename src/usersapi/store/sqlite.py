"""
=============================================================================
SQLITE USER STORE
=============================================================================

Production store: one SQLite file (``users.db`` by default), mapped with
SQLAlchemy. The table is ``UserRecord`` in records.py:

    users
    ├── id          INTEGER PRIMARY KEY AUTOINCREMENT
    ├── name        VARCHAR NOT NULL
    ├── email       VARCHAR NOT NULL   (unique while deleted_at IS NULL)
    ├── created_at  DATETIME (UTC)
    ├── updated_at  DATETIME
    └── deleted_at  DATETIME (NULL while the user is live)

The schema is created on open with ``metadata.create_all``. Every operation
runs in its own session and transaction, under a lock so that writers never
interleave. ``":memory:"`` shares a single connection between threads
(``StaticPool``) so every session sees the same database.

Errors leave the store as the service's own kinds:

    IntegrityError   → ConflictError   (the live-email index)
    no live row      → NotFoundError
    SQLAlchemyError  → StoreError

=============================================================================
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import ConflictError, NotFoundError, StoreError
from ..models import User, UserDraft
from .base import UserStore
from .records import Base, UserRecord


logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_sqlite_engine(path: str) -> Engine:
    """Engine for a file path, or for a private in-process database."""
    if path == ":memory:":
        return create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
    )


class SQLiteUserStore(UserStore):
    """
    UserStore backed by SQLite through SQLAlchemy.

        store = SQLiteUserStore("users.db")      # or ":memory:"
        user = store.create_user(UserDraft("Alice", "alice@example.com"))

    Raises:
        StoreError: If the database cannot be opened or migrated.
    """

    def __init__(self, path: str = "users.db"):
        self.path = path
        self._lock = threading.RLock()
        self._closed = False
        self._engine = create_sqlite_engine(path)
        self._sessions = sessionmaker(bind=self._engine, expire_on_commit=False)

        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as e:
            self._engine.dispose()
            raise StoreError(f"Cannot open database {path}: {e}") from e

        logger.info(f"Opened user database at {path}")

    # =========================================================================
    # READS
    # =========================================================================

    def list_users(self) -> List[User]:
        with self._session() as session:
            records = session.scalars(
                select(UserRecord)
                .where(UserRecord.deleted_at.is_(None))
                .order_by(UserRecord.id)
            )
            return [record.to_user() for record in records]

    def get_user_by_id(self, user_id: int) -> User:
        with self._session() as session:
            return self._live(session, UserRecord.id == user_id).to_user()

    def get_user_by_email(self, email: str) -> User:
        with self._session() as session:
            return self._live(session, UserRecord.email == email).to_user()

    # =========================================================================
    # WRITES
    # =========================================================================

    def create_user(self, draft: UserDraft) -> User:
        now = _now()
        record = UserRecord(
            name=draft.name,
            email=draft.email,
            created_at=now,
            updated_at=now,
        )
        with self._session(email=draft.email) as session:
            session.add(record)
            session.flush()
            user = record.to_user()

        logger.debug(f"Created user {user.id}")
        return user

    def update_user(self, user: User) -> User:
        with self._session(email=user.email) as session:
            record = self._live(session, UserRecord.id == user.id)
            record.name = user.name
            record.email = user.email
            record.updated_at = _now()
            session.flush()
            return record.to_user()

    def delete_user(self, user_id: int) -> None:
        with self._session() as session:
            self._live(session, UserRecord.id == user_id).deleted_at = _now()
        logger.debug(f"Soft-deleted user {user_id}")

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._engine.dispose()

    # =========================================================================
    # HELPERS
    # =========================================================================

    @contextmanager
    def _session(self, email: Optional[str] = None) -> Iterator[Session]:
        """
        One session and transaction: committed when the block exits cleanly,
        rolled back otherwise. ``email`` names the address in a ConflictError.
        """
        with self._lock:
            if self._closed:
                raise StoreError(f"Database {self.path} is closed")
            try:
                with self._sessions() as session, session.begin():
                    yield session
            except IntegrityError as e:
                if email is None:
                    raise StoreError(f"Write failed: {e}") from e
                raise ConflictError(f"{email} already exists") from e
            except SQLAlchemyError as e:
                raise StoreError(f"Query failed: {e}") from e

    @staticmethod
    def _live(session: Session, condition) -> UserRecord:
        record = session.scalars(
            select(UserRecord).where(condition, UserRecord.deleted_at.is_(None))
        ).first()
        if record is None:
            raise NotFoundError()
        return record
