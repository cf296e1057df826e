"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

    request.py       - HTTPRequest, RequestParser, HTTPParseError
    response.py      - HTTPResponse, ResponseBuilder, ok/created/... helpers
    router.py        - Router, Route
    status_codes.py  - HTTPStatus

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,                  # 200 OK
    created,             # 201 Created
    bad_request,         # 400 Bad Request
    not_found,           # 404 Not Found
    method_not_allowed,  # 405 Method Not Allowed
    conflict,            # 409 Conflict
    internal_error,      # 500 Internal Server Error
    error_response,
)
from .router import Router, Route, RouteMatch
from .status_codes import HTTPStatus

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "bad_request",
    "not_found",
    "method_not_allowed",
    "conflict",
    "internal_error",
    "error_response",

    "Router",
    "Route",
    "RouteMatch",

    "HTTPStatus",
]
