"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes read by a Connection into an HTTPRequest the router and
the user handlers can work with.

    POST /users HTTP/1.1\\r\\n                 ← request line
    Host: localhost:8080\\r\\n                 ← headers (names lower-cased)
    Content-Type: application/json\\r\\n
    Content-Length: 45\\r\\n
    \\r\\n                                     ← end of headers
    {"name": "Alice", "email": "a@x.io"}     ← body (Content-Length bytes)

Only what a JSON API needs is supported: Content-Length bodies, HTTP/1.0 and
HTTP/1.1, and the common methods. Anything else is rejected early with an
HTTPParseError that carries the status code to answer with.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from urllib.parse import parse_qs, urlparse
import re
import json

from .status_codes import HTTPStatus


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    The status code tells the server what to send back:

        400 Bad Request            - malformed request line, body or JSON
        405 Method Not Allowed     - method we do not recognise
        413 Payload Too Large      - over max_request_size
        505 HTTP Version Not Supported
    """

    def __init__(self, message: str, status_code: int = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method: Upper-case HTTP method.
        path: Path as sent (still percent-encoded), without the query string.
        version: "HTTP/1.0" or "HTTP/1.1".
        headers: Header values keyed by lower-cased name.
        query_params: Query string as a dict of lists.
        body: Raw body bytes (exactly Content-Length long).
        path_params: Filled in by the router, e.g. {"id": "42"}.
        client_address: (ip, port) of the peer.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: tuple[str, int] = ("", 0)

    _body_json: Optional[Any] = field(default=None, repr=False)

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters (``; charset=...`` stripped)."""
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def json(self) -> Any:
        """
        The body decoded as JSON, or None when the body is empty.

        Decoded once and cached.

        Raises:
            HTTPParseError: If the body is not valid UTF-8 JSON.
        """
        if self._body_json is None and self.body:
            try:
                self._body_json = json.loads(self.body.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise HTTPParseError(f"Invalid JSON body: {e}")
        return self._body_json

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client expects the connection to stay open.

        HTTP/1.1 keeps alive unless told ``Connection: close``;
        HTTP/1.0 closes unless told ``Connection: keep-alive``.
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter."""
        values = self.query_params.get(name, [])
        return values[0] if values else default


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    One parser is shared by all worker threads; it keeps no per-request
    state.
    """

    VALID_METHODS = {"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"}

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Args:
            data: Request bytes, headers and body.
            client_address: Peer (ip, port), kept for access logs.

        Returns:
            The parsed request.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError(f"Invalid Content-Length: {headers['content-length']}")
        if content_length < 0:
            raise HTTPParseError(f"Invalid Content-Length: {content_length}")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, Dict[str, list[str]], str]:
        """Split ``METHOD SP URI SP VERSION`` and validate each part."""
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(
                f"Invalid method: {method}",
                status_code=HTTPStatus.METHOD_NOT_ALLOWED,
            )

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )

        parsed = urlparse(uri)
        path = parsed.path or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict keyed by lower-cased name.

        Repeated headers are joined with ", " (RFC 7230 section 3.2.2);
        malformed lines are skipped.
        """
        headers: Dict[str, str] = {}

        for line in lines:
            if not line:
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """Parse a request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
