"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps an accepted client socket and hands the server one complete HTTP
request at a time.

TCP delivers a byte stream, not messages. A single recv() may return half a
request, or a request plus the start of the next one, so reads go through a
buffer:

    1. recv() until the buffer contains the end of headers (\\r\\n\\r\\n)
    2. read Content-Length from the headers
    3. recv() until the body is complete
    4. cut one request off the front; keep the rest for the next call

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ──┐
               ▲                                                 │
               └─────────────────────────────────────────────────┘
                                      │
                                      ▼
                               CLOSING ──► CLOSED

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLarge(ValueError):
    """The client sent more than max_request_size bytes for one request."""


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client (ip, port).
        id: Short random id used to correlate log lines.
        state: Current ConnectionState.
        requests_handled: Requests read so far on this connection.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: float = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request.

        The first request on a connection waits up to ``timeout``; later
        (keep-alive) requests wait only ``keep_alive_timeout``.

        Returns:
            The request bytes, or None if the client closed the connection
            or a keep-alive connection went idle.

        Raises:
            TimeoutError: The first request did not arrive in time.
            RequestTooLarge: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                self._check_size()

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break  # closed mid-body; the parser reports the short body
                self._buffer += chunk
                self._check_size()

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _check_size(self):
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")

    @staticmethod
    def _parse_content_length(headers: bytes) -> int:
        """
        Pull Content-Length out of raw header bytes.

        Needed before the request can be parsed properly, so this is a plain
        line scan. A missing or garbled value counts as 0 and the parser
        deals with it.
        """
        header_str = headers.decode("utf-8", errors="replace").lower()
        for line in header_str.split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(int(line.split(":", 1)[1].strip()), 0)
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            True on success, False if the client went away.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close gracefully: half-close, drain what the client still sends,
        then release the socket. Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
