"""SQLAlchemy mapping for the ``users`` table."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..models import User


class Base(DeclarativeBase):
    pass


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite keeps no offset; every stored timestamp is UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UserRecord(Base):
    """
    One row of ``users``.

    Deleting stamps ``deleted_at`` and keeps the row. ``sqlite_autoincrement``
    stops SQLite from handing a deleted row's id to a new one, and the email
    index only covers live rows, so a deleted user's email can be taken again.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index(
            "ix_users_email_live",
            "email",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
        ),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), index=True
    )

    def to_user(self) -> User:
        return User(
            id=self.id,
            name=self.name,
            email=self.email,
            created_at=_as_utc(self.created_at),
            updated_at=_as_utc(self.updated_at),
            deleted_at=_as_utc(self.deleted_at),
        )

    def __repr__(self) -> str:
        return f"<UserRecord(id={self.id}, email={self.email})>"
