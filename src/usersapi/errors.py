"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure the user service can report to a client is one of four kinds.
Each kind carries the HTTP status it maps to, so the handler layer can turn
any of them into a response in one place:

    ┌────────────────────┬────────┬──────────────────────────────────────┐
    │ Error              │ Status │ Raised when                          │
    ├────────────────────┼────────┼──────────────────────────────────────┤
    │ ValidationError    │  400   │ Bad path id, missing/malformed body  │
    │ NotFoundError      │  404   │ No live record for the id or email   │
    │ ConflictError      │  409   │ Email already registered             │
    │ StoreError         │  500   │ Any other persistence failure        │
    └────────────────────┴────────┴──────────────────────────────────────┘

Callers test for a kind with ``except NotFoundError`` / ``isinstance``;
there is no shared "record not found" sentinel object.

=============================================================================
"""

from typing import Optional

from .http.status_codes import HTTPStatus


class UserServiceError(Exception):
    """
    Base class for all errors surfaced to clients.

    Attributes:
        message: Human-readable text sent back in the response body.
        status_code: HTTP status the error maps to.
    """

    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: Optional[HTTPStatus] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(UserServiceError):
    """Malformed or missing input."""

    status_code = HTTPStatus.BAD_REQUEST


class NotFoundError(UserServiceError):
    """The requested identifier or email has no matching live record."""

    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class ConflictError(UserServiceError):
    """A uniqueness precondition failed (duplicate email)."""

    status_code = HTTPStatus.CONFLICT


class StoreError(UserServiceError):
    """Generic persistence failure (connectivity, disk, SQL errors)."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
