"""User store interface."""

from abc import ABC, abstractmethod
from typing import List

from ..models import User, UserDraft


class UserStore(ABC):
    """
    Persistence contract for users.

    Reads only ever see live (not soft-deleted) records. Failures are raised,
    never returned:

        NotFoundError   no live record for the id or email
        ConflictError   the email is taken by another live record
        StoreError      anything else the backend reports
    """

    @abstractmethod
    def list_users(self) -> List[User]:
        """All live users ordered by id. Empty list when there are none."""

    @abstractmethod
    def get_user_by_id(self, user_id: int) -> User: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> User: ...

    @abstractmethod
    def create_user(self, draft: UserDraft) -> User:
        """Persist a new user and return it with its id and timestamps."""

    @abstractmethod
    def update_user(self, user: User) -> User:
        """Persist name and email of an existing live user."""

    @abstractmethod
    def delete_user(self, user_id: int) -> None: ...

    def close(self) -> None:
        """Release backend resources."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
