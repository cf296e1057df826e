"""
Integration tests: the full service over real sockets.
"""

import http.client
import json
import socket

import pytest

from usersapi import create_app


ALICE = {"name": "Alice", "email": "alice@example.com"}


def raw_exchange(port: int, data: bytes) -> bytes:
    """Send raw bytes and read until the server closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=5) as sock:
        sock.sendall(data)
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


class TestUserLifecycle:
    """CRUD flow against the in-memory backed service."""

    def test_hello(self, live_server):
        status, headers, body = live_server.request("GET", "/")

        assert status == 200
        assert body == b"Hello, World!"
        assert headers["Server"] == "usersapi/1.0"
        assert "X-Request-ID" in headers

    def test_empty_list(self, live_server):
        status, _, body = live_server.request("GET", "/users")

        assert status == 200
        assert body == b"[]"

    def test_create_then_get(self, live_server):
        status, headers, body = live_server.request(
            "POST", "/users", ALICE, {"Content-Type": "application/json"}
        )
        assert status == 201
        assert b'"id":1' in body
        assert headers["Location"] == "/users/1"

        status, _, body = live_server.request("GET", "/users/1")
        user = json.loads(body)
        assert status == 200
        assert user["name"] == "Alice"
        assert user["email"] == "alice@example.com"

    def test_duplicate_email(self, live_server):
        live_server.request("POST", "/users", ALICE)
        status, _, body = live_server.request("POST", "/users", {"name": "Other", "email": ALICE["email"]})

        assert status == 409
        assert json.loads(body) == {"error": "alice@example.com already exists"}

        _, _, body = live_server.request("GET", "/users")
        assert len(json.loads(body)) == 1

    def test_update_merges_fields(self, live_server):
        live_server.request("POST", "/users", ALICE)

        status, _, body = live_server.request("PUT", "/users/1", {"name": "Alicia", "email": ""})
        user = json.loads(body)

        assert status == 200
        assert user["name"] == "Alicia"
        assert user["email"] == "alice@example.com"

    def test_update_to_taken_email_conflicts(self, live_server):
        live_server.request("POST", "/users", ALICE)
        live_server.request("POST", "/users", {"name": "Bob", "email": "bob@example.com"})

        status, _, _ = live_server.request("PUT", "/users/2", {"email": "alice@example.com"})
        assert status == 409

    def test_delete_then_gone(self, live_server):
        live_server.request("POST", "/users", ALICE)

        status, _, body = live_server.request("DELETE", "/users/1")
        assert status == 200
        assert json.loads(body) == {"message": "User 1 deleted"}

        assert live_server.request("GET", "/users/1")[0] == 404
        assert live_server.request("DELETE", "/users/1")[0] == 404
        assert live_server.request("PUT", "/users/1", {"name": "x"})[0] == 404

    def test_deleted_id_not_reused(self, live_server):
        live_server.request("POST", "/users", ALICE)
        live_server.request("DELETE", "/users/1")

        status, _, body = live_server.request("POST", "/users", ALICE)
        assert status == 201
        assert json.loads(body)["id"] == 2

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    @pytest.mark.parametrize("user_id", ["abc", "0", "-3", "1%2F2", "%20"])
    def test_invalid_ids(self, live_server, method, user_id):
        body = {"name": "x"} if method == "PUT" else None
        status, _, payload = live_server.request(method, f"/users/{user_id}", body)

        assert status == 400
        assert json.loads(payload) == {"error": "Invalid ID"}


class TestProtocol:
    """HTTP-level behaviour of the server."""

    def test_unknown_route(self, live_server):
        status, _, body = live_server.request("GET", "/nothing")

        assert status == 404
        assert json.loads(body) == {"error": "No route matches /nothing"}

    def test_method_not_allowed(self, live_server):
        status, headers, _ = live_server.request("DELETE", "/users")

        assert status == 405
        assert headers["Allow"] == "GET, POST"

    def test_keep_alive_reuses_connection(self, live_server):
        conn = http.client.HTTPConnection("127.0.0.1", live_server.port, timeout=5)
        try:
            for _ in range(3):
                conn.request("GET", "/users")
                response = conn.getresponse()
                assert response.status == 200
                assert response.getheader("Connection") == "keep-alive"
                response.read()
        finally:
            conn.close()

    def test_connection_close_honoured(self, live_server):
        data = raw_exchange(
            live_server.port,
            b"GET / HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n",
        )
        assert data.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Connection: close" in data

    def test_malformed_request_line(self, live_server):
        data = raw_exchange(live_server.port, b"HELLO\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 400 Bad Request\r\n")
        assert b'"error"' in data

    def test_unsupported_version(self, live_server):
        data = raw_exchange(live_server.port, b"GET / HTTP/2.0\r\n\r\n")
        assert data.startswith(b"HTTP/1.1 505 ")


class TestTimeouts:

    def test_silent_client_gets_408(self, config, start_server):
        config.timeout = 0.5
        start_server(create_app(config))

        with socket.create_connection(("127.0.0.1", config.port), timeout=5) as sock:
            sock.sendall(b"GET / HTTP/1.1\r\n")  # never finishes the headers
            data = sock.recv(4096)

        assert data.startswith(b"HTTP/1.1 408 Request Timeout\r\n")


class TestSQLiteBackedService:

    def test_data_survives_restart(self, config, tmp_path, start_server):
        config.database = str(tmp_path / "users.db")

        first = start_server(create_app(config))
        assert first.request("POST", "/users", ALICE)[0] == 201
        first.stop()

        second = start_server(create_app(config))
        status, _, body = second.request("GET", "/users/1")

        assert status == 200
        assert json.loads(body)["email"] == "alice@example.com"
