"""
pytest configuration and fixtures.
"""

import http.client
import json
import socket
import threading
from typing import Callable, Dict, Generator, List, Optional

import pytest

from usersapi import (
    HTTPServer,
    InMemoryUserStore,
    NotFoundError,
    ServerConfig,
    StoreError,
    User,
    UserDraft,
    UserStore,
    create_app,
)
from usersapi.http import HTTPRequest


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "Alice", "email": "alice@example.com"}'
    return (
        b"POST /users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


def make_request(
    method: str,
    path: str = "/users",
    body: Optional[object] = None,
    path_params: Optional[Dict[str, str]] = None,
) -> HTTPRequest:
    """Build an HTTPRequest the way the router hands it to a handler."""
    if body is None:
        raw = b""
    elif isinstance(body, (bytes, str)):
        raw = body.encode() if isinstance(body, str) else body
    else:
        raw = json.dumps(body).encode()
    return HTTPRequest(
        method=method,
        path=path,
        headers={"content-type": "application/json", "content-length": str(len(raw))},
        body=raw,
        path_params=path_params or {},
        client_address=("127.0.0.1", 50000),
    )


@pytest.fixture
def build_request():
    """Factory fixture around make_request."""
    return make_request


class MockUserStore(UserStore):
    """
    Store test double.

    ``users`` is served by id, ``existing_user`` is what a lookup by email
    finds, and when ``return_err`` is set every call raises it. Calls are
    recorded in ``calls`` so tests can assert what was (not) invoked.
    """

    def __init__(
        self,
        users: Optional[Dict[int, User]] = None,
        return_err: Optional[Exception] = None,
        existing_user: Optional[User] = None,
    ):
        self.users = dict(users or {})
        self.return_err = return_err
        self.existing_user = existing_user
        self.calls: List[str] = []
        self._next_id = max(self.users, default=0) + 1

    def _record(self, name: str):
        self.calls.append(name)
        if self.return_err is not None:
            raise self.return_err

    def list_users(self) -> List[User]:
        self._record("list_users")
        return [self.users[key] for key in sorted(self.users)]

    def get_user_by_id(self, user_id: int) -> User:
        self._record("get_user_by_id")
        if user_id not in self.users:
            raise NotFoundError()
        return self.users[user_id]

    def get_user_by_email(self, email: str) -> User:
        self._record("get_user_by_email")
        if self.existing_user is not None:
            return self.existing_user
        for user in self.users.values():
            if user.email == email:
                return user
        raise NotFoundError()

    def create_user(self, draft: UserDraft) -> User:
        self._record("create_user")
        user = User(id=self._next_id, name=draft.name, email=draft.email)
        self.users[user.id] = user
        self._next_id += 1
        return user

    def update_user(self, user: User) -> User:
        self._record("update_user")
        if user.id not in self.users:
            raise NotFoundError()
        self.users[user.id] = user
        return user

    def delete_user(self, user_id: int) -> None:
        self._record("delete_user")
        if self.users.pop(user_id, None) is None:
            raise NotFoundError()


@pytest.fixture
def mock_store() -> MockUserStore:
    return MockUserStore()


@pytest.fixture
def failing_store() -> MockUserStore:
    """A store whose every call fails with a generic persistence error."""
    return MockUserStore(return_err=StoreError("disk I/O error"))


@pytest.fixture
def alice() -> User:
    return User(id=1, name="Alice", email="alice@example.com")


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def config(free_port: int) -> ServerConfig:
    """Small, quiet configuration for servers started in tests."""
    return ServerConfig(
        host="127.0.0.1",
        port=free_port,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        database=":memory:",
        log_level="WARNING",
    )


class LiveServer:
    """Runs an HTTPServer on a background thread."""

    def __init__(self, server: HTTPServer, port: int):
        self.server = server
        self.port = port
        self._thread: Optional[threading.Thread] = None

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_started(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def request(
        self,
        method: str,
        path: str,
        body: Optional[object] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Send one request on a fresh connection.

        Returns:
            (status, headers, body bytes)
        """
        conn = http.client.HTTPConnection("127.0.0.1", self.port, timeout=5)
        try:
            payload = body
            if body is not None and not isinstance(body, (bytes, str)):
                payload = json.dumps(body)
            conn.request(method, path, body=payload, headers=headers or {})
            response = conn.getresponse()
            return response.status, dict(response.getheaders()), response.read()
        finally:
            conn.close()


@pytest.fixture
def start_server(config: ServerConfig) -> Generator[Callable[[HTTPServer], LiveServer], None, None]:
    """Start servers on the configured port; all are stopped at teardown."""
    started: List[LiveServer] = []

    def start(server: HTTPServer) -> LiveServer:
        live = LiveServer(server, config.port)
        live.start()
        started.append(live)
        return live

    yield start

    for live in started:
        live.stop()


@pytest.fixture
def live_server(config: ServerConfig, start_server) -> LiveServer:
    """The full service on a free port, backed by an in-memory store."""
    return start_server(create_app(config, store=InMemoryUserStore()))


@pytest.fixture
def store_factory():
    """The MockUserStore class, for tests that build their own state."""
    return MockUserStore
