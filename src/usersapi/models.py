"""User value types."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class UserDraft:
    """Caller-supplied fields for a new user, before an id is assigned."""

    name: str
    email: str


@dataclass
class User:
    """
    One persisted account.

    ``id`` is assigned by the store and never changes. The timestamp fields
    belong to the store: handlers pass them through untouched and
    ``deleted_at`` is never rendered.
    """

    id: int
    name: str
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation used in response bodies."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
