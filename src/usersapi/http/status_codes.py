"""
=============================================================================
HTTP STATUS CODES (RFC 7231)
=============================================================================

The subset of status codes the user service can produce, with their reason
phrases for the response status line.

    ┌───────────┬──────────────────────────────────────────────────────────┐
    │   Code    │  Used for                                                │
    ├───────────┼──────────────────────────────────────────────────────────┤
    │  200      │  List, get, update, delete, index                        │
    │  201      │  User created                                            │
    │  400      │  Invalid id, missing fields, unparsable request          │
    │  404      │  Unknown user or unknown route                           │
    │  405      │  Known route, wrong method                               │
    │  408      │  Client never finished sending the request               │
    │  409      │  Email already registered                                │
    │  413      │  Request bigger than max_request_size                    │
    │  500      │  Store failure or handler crash                          │
    │  503      │  Worker queue full                                       │
    │  505      │  Anything other than HTTP/1.0 or HTTP/1.1                │
    └───────────┴──────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    An IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201
    NO_CONTENT = 204

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    PAYLOAD_TOO_LARGE = 413

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line, e.g. ``HTTP/1.1 409 Conflict``."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self < 600


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.NO_CONTENT: "No Content",

    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.CONFLICT: "Conflict",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",

    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
