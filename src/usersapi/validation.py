"""
=============================================================================
INPUT VALIDATION
=============================================================================

Pure checks applied before any store write:

    parse_user_id          "/users/:id" segment   -> positive int
    validate_draft         POST body              -> UserDraft
    validate_changes       PUT body               -> {field: new value}
    ensure_email_available email                  -> ConflictError if taken

Each raises a UserServiceError subclass; the handlers turn those into
responses.

=============================================================================
"""

import re
from typing import Any, Dict

from .errors import ConflictError, NotFoundError, ValidationError
from .models import UserDraft
from .store.base import UserStore


_ID_PATTERN = re.compile(r"[0-9]+")

# Largest value an SQLite INTEGER column can hold.
MAX_USER_ID = 2 ** 63 - 1

UPDATABLE_FIELDS = ("name", "email")


def parse_user_id(raw: str) -> int:
    """
    Parse a path id. Only plain decimal digits with a value of at least 1
    are accepted, so "0", "-1", "+1" and " 1" are all rejected, as is
    anything past MAX_USER_ID.

    Raises:
        ValidationError: "Invalid ID".
    """
    if raw is None or not _ID_PATTERN.fullmatch(raw):
        raise ValidationError("Invalid ID")
    user_id = int(raw)
    if not 1 <= user_id <= MAX_USER_ID:
        raise ValidationError("Invalid ID")
    return user_id


def _non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def validate_draft(body: Any) -> UserDraft:
    """
    Check a create payload: a JSON object with non-empty string ``name`` and
    ``email``. Other keys are ignored.

    Raises:
        ValidationError: "Missing Required Fields".
    """
    if not isinstance(body, dict):
        raise ValidationError("Missing Required Fields")

    name = body.get("name")
    email = body.get("email")
    if not _non_empty_string(name) or not _non_empty_string(email):
        raise ValidationError("Missing Required Fields")

    return UserDraft(name=name, email=email)


def validate_changes(body: Any) -> Dict[str, str]:
    """
    Check an update payload and return the fields to change.

    Present, non-empty ``name``/``email`` values are returned; empty strings,
    nulls and absent fields mean "leave unchanged". ``id`` and unknown keys
    are ignored.

    Raises:
        ValidationError: "Invalid request body" if the body is not an object
            or a field holds something other than a string.
    """
    if not isinstance(body, dict):
        raise ValidationError("Invalid request body")

    changes: Dict[str, str] = {}
    for field_name in UPDATABLE_FIELDS:
        value = body.get(field_name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValidationError("Invalid request body")
        if value.strip():
            changes[field_name] = value
    return changes


def ensure_email_available(store: UserStore, email: str) -> None:
    """
    Raises:
        ConflictError: "<email> already exists" when a live user has it.
        StoreError: Propagated from the lookup.
    """
    try:
        store.get_user_by_email(email)
    except NotFoundError:
        return
    raise ConflictError(f"{email} already exists")
