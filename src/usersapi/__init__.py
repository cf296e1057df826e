"""
=============================================================================
USERSAPI
=============================================================================

A small User CRUD service: name and email records behind five HTTP
endpoints, persisted in SQLite, served by a threaded HTTP/1.1 server.

    from usersapi import create_app, ServerConfig

    app = create_app(ServerConfig(port=8080, database="users.db"))
    app.run()

Package layout:

    usersapi/
    ├── app.py          composition root (store + handlers + routes)
    ├── server.py       HTTPServer
    ├── config.py       ServerConfig
    ├── errors.py       ValidationError, NotFoundError, ConflictError, StoreError
    ├── models.py       User, UserDraft
    ├── validation.py   input checks
    ├── core/           sockets, connections, thread pool
    ├── http/           request parsing, responses, routing, status codes
    ├── middleware/     pipeline and access logging
    ├── handlers/       endpoint implementations
    └── store/          UserStore, SQLiteUserStore, InMemoryUserStore

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer
from .app import create_app, register_routes
from .errors import (
    UserServiceError,
    ValidationError,
    NotFoundError,
    ConflictError,
    StoreError,
)
from .models import User, UserDraft
from .store import UserStore, SQLiteUserStore, InMemoryUserStore
from .handlers import UserHandlers

__all__ = [
    "__version__",
    "ServerConfig",
    "HTTPServer",
    "create_app",
    "register_routes",
    "UserServiceError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "StoreError",
    "User",
    "UserDraft",
    "UserStore",
    "SQLiteUserStore",
    "InMemoryUserStore",
    "UserHandlers",
]
