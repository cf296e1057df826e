"""
User persistence.

    base.py    - UserStore interface
    records.py - SQLAlchemy mapping of the users table
    sqlite.py  - SQLite implementation on SQLAlchemy (production)
    memory.py  - dict implementation (tests, --memory)
"""

from .base import UserStore
from .sqlite import SQLiteUserStore
from .memory import InMemoryUserStore

__all__ = ["UserStore", "SQLiteUserStore", "InMemoryUserStore"]
