"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them for the socket.

    HTTP/1.1 201 Created\\r\\n
    Content-Type: application/json; charset=utf-8\\r\\n
    Location: /users/1\\r\\n
    Content-Length: 98\\r\\n                  ← added by to_bytes()
    Date: Mon, 19 Oct 2026 12:00:00 GMT\\r\\n  ← added by to_bytes()
    Server: usersapi/1.0\\r\\n                ← added by to_bytes()
    \\r\\n
    {"id":1,"name":"Alice",...}

JSON bodies use compact separators. Error bodies always have the shape
``{"error": "<message>"}`` so clients can rely on one field.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union
import json

from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "usersapi/1.0"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

    Handlers normally get one from ResponseBuilder or one of the helper
    functions at the bottom of this module.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def json(self) -> Any:
        """Decode a JSON body. Mostly useful in tests."""
        return json.loads(self.body.decode("utf-8")) if self.body else None

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize to bytes for ``socket.sendall``.

        Content-Length, Date and Server are filled in when the handler did
        not set them.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .header("Location", "/users/1")
            .json(user.to_dict())
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        """
        Serialize ``data`` as a compact JSON body.

        ``ensure_ascii=False`` keeps non-ASCII names readable on the wire.
        """
        self._body = json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an RFC 7231 HTTP-date.

    Example: ``Mon, 19 Oct 2026 12:00:00 GMT``. Built by hand so the output
    does not depend on the process locale.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
#     return ok([u.to_dict() for u in users])
#     return created(user.to_dict(), location=f"/users/{user.id}")
#     return not_found("User not found")
#
# =============================================================================

def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """200 OK. dict/list bodies become JSON, str bodies plain text."""
    builder = ResponseBuilder().status(HTTPStatus.OK)

    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or "text/plain; charset=utf-8")
    else:
        builder.body(body)
        if content_type:
            builder.content_type(content_type)

    return builder.build()


def created(body: Union[dict, list], location: Optional[str] = None) -> HTTPResponse:
    """201 Created with a JSON body and an optional Location header."""
    builder = ResponseBuilder().status(HTTPStatus.CREATED).json(body)
    if location:
        builder.header("Location", location)
    return builder.build()


def error_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """Any error status with the standard ``{"error": message}`` body."""
    return ResponseBuilder().status(status).json({"error": message}).build()


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return error_response(HTTPStatus.BAD_REQUEST, message)


def not_found(message: str = "Not Found") -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, message)


def conflict(message: str = "Conflict") -> HTTPResponse:
    return error_response(HTTPStatus.CONFLICT, message)


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """405 with the Allow header RFC 7231 requires."""
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .json({"error": "Method Not Allowed", "allowed": allowed_methods})
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500. Keep ``message`` generic; details belong in the log."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)
