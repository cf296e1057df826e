"""In-process user store, used by tests and ``usersapi --memory``."""

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List

from ..errors import ConflictError, NotFoundError
from ..models import User, UserDraft
from .base import UserStore


class InMemoryUserStore(UserStore):
    """
    Dict-backed UserStore with the same semantics as SQLiteUserStore:
    soft delete, ids never reused, email unique among live users.

    Returned users are copies, so callers cannot mutate stored state.
    """

    def __init__(self):
        self._users: Dict[int, User] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def list_users(self) -> List[User]:
        with self._lock:
            return [replace(u) for _, u in sorted(self._users.items()) if not u.is_deleted]

    def get_user_by_id(self, user_id: int) -> User:
        with self._lock:
            return replace(self._live(user_id))

    def get_user_by_email(self, email: str) -> User:
        with self._lock:
            for user in self._users.values():
                if user.email == email and not user.is_deleted:
                    return replace(user)
        raise NotFoundError()

    def create_user(self, draft: UserDraft) -> User:
        now = datetime.now(timezone.utc)
        with self._lock:
            self._check_email(draft.email)
            user = User(
                id=self._next_id,
                name=draft.name,
                email=draft.email,
                created_at=now,
                updated_at=now,
            )
            self._users[user.id] = user
            self._next_id += 1
            return replace(user)

    def update_user(self, user: User) -> User:
        with self._lock:
            stored = self._live(user.id)
            self._check_email(user.email, exclude_id=user.id)
            stored.name = user.name
            stored.email = user.email
            stored.updated_at = datetime.now(timezone.utc)
            return replace(stored)

    def delete_user(self, user_id: int) -> None:
        with self._lock:
            self._live(user_id).deleted_at = datetime.now(timezone.utc)

    def _live(self, user_id: int) -> User:
        user = self._users.get(user_id)
        if user is None or user.is_deleted:
            raise NotFoundError()
        return user

    def _check_email(self, email: str, exclude_id: int = 0):
        # Mirrors the partial unique index of the SQLite schema.
        for user in self._users.values():
            if user.email == email and user.id != exclude_id and not user.is_deleted:
                raise ConflictError(f"{email} already exists")
