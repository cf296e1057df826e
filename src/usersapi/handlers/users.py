"""
=============================================================================
USER HANDLERS
=============================================================================

The five CRUD operations on ``/users``:

    ┌────────┬──────────────┬───────────────┬──────────────────────────────┐
    │ Method │ Path         │ Success       │ Failures                     │
    ├────────┼──────────────┼───────────────┼──────────────────────────────┤
    │ GET    │ /users       │ 200 [User]    │ 500                          │
    │ POST   │ /users       │ 201 User      │ 400, 409, 500                │
    │ GET    │ /users/:id   │ 200 User      │ 400, 404, 500                │
    │ PUT    │ /users/:id   │ 200 User      │ 400, 404, 409, 500           │
    │ DELETE │ /users/:id   │ 200 message   │ 400, 404, 500                │
    └────────┴──────────────┴───────────────┴──────────────────────────────┘

Handlers raise UserServiceError subclasses; ``maps_errors`` turns them into
``{"error": "..."}`` responses in one place. Store failures are logged with
a traceback and answered with a generic 500 message.

=============================================================================
"""

import functools
import logging
from typing import Any, Callable

from ..errors import UserServiceError, ValidationError
from ..http.request import HTTPParseError, HTTPRequest
from ..http.response import HTTPResponse, created, error_response, internal_error, ok
from ..http.status_codes import HTTPStatus
from ..store.base import UserStore
from ..validation import (
    ensure_email_available,
    parse_user_id,
    validate_changes,
    validate_draft,
)


logger = logging.getLogger(__name__)


def maps_errors(handler: Callable[..., HTTPResponse]) -> Callable[..., HTTPResponse]:
    """Convert a UserServiceError raised by ``handler`` into its response."""

    @functools.wraps(handler)
    def wrapper(self, request: HTTPRequest) -> HTTPResponse:
        try:
            return handler(self, request)
        except UserServiceError as e:
            if e.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
                logger.exception(f"{request.method} {request.path} failed: {e.message}")
                return internal_error()
            logger.debug(f"{request.method} {request.path} -> {int(e.status_code)} {e.message}")
            return error_response(e.status_code, e.message)

    return wrapper


def _decode_body(request: HTTPRequest, message: str) -> Any:
    try:
        return request.json
    except HTTPParseError:
        raise ValidationError(message)


class UserHandlers:
    """
    HTTP handlers bound to one UserStore.

        handlers = UserHandlers(SQLiteUserStore("users.db"))
        router.get("/users")(handlers.list_users)
    """

    def __init__(self, store: UserStore):
        self.store = store

    @maps_errors
    def list_users(self, request: HTTPRequest) -> HTTPResponse:
        users = self.store.list_users()
        return ok([user.to_dict() for user in users])

    @maps_errors
    def get_user(self, request: HTTPRequest) -> HTTPResponse:
        user_id = parse_user_id(request.path_params.get("id"))
        return ok(self.store.get_user_by_id(user_id).to_dict())

    @maps_errors
    def create_user(self, request: HTTPRequest) -> HTTPResponse:
        """
        Validate, check the email is free, then persist.

        Validation runs first so a bad payload never reaches the store.
        """
        draft = validate_draft(_decode_body(request, "Missing Required Fields"))
        ensure_email_available(self.store, draft.email)

        user = self.store.create_user(draft)
        logger.info(f"Created user {user.id}")
        return created(user.to_dict(), location=f"/users/{user.id}")

    @maps_errors
    def update_user(self, request: HTTPRequest) -> HTTPResponse:
        """
        Merge the body into the stored user and persist.

        Empty or missing fields keep their stored value and ``id`` always
        comes from the path. There is no email pre-check here; a clash with
        another live user is still reported by the store as 409.
        """
        user_id = parse_user_id(request.path_params.get("id"))
        changes = validate_changes(_decode_body(request, "Invalid request body"))

        user = self.store.get_user_by_id(user_id)
        for field_name, value in changes.items():
            setattr(user, field_name, value)

        updated = self.store.update_user(user)
        logger.info(f"Updated user {updated.id}")
        return ok(updated.to_dict())

    @maps_errors
    def delete_user(self, request: HTTPRequest) -> HTTPResponse:
        user_id = parse_user_id(request.path_params.get("id"))
        self.store.delete_user(user_id)
        logger.info(f"Deleted user {user_id}")
        return ok({"message": f"User {user_id} deleted"})
