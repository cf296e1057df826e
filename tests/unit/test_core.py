"""
Unit tests for the thread pool and connection buffering.
"""

import socket
import threading
import time

import pytest

from usersapi.core import Connection, ConnectionState, RequestTooLarge, ThreadPool


class TestThreadPool:

    def test_runs_submitted_tasks(self):
        pool = ThreadPool(min_workers=2, max_workers=2)
        pool.start()
        done = threading.Event()

        try:
            assert pool.submit(done.set) is True
            assert done.wait(timeout=5.0)
        finally:
            pool.shutdown(wait=True, timeout=5.0)

    def test_submit_before_start_raises(self):
        with pytest.raises(RuntimeError):
            ThreadPool().submit(lambda: None)

    def test_full_queue_rejects(self):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=1)
        pool.start()
        release = threading.Event()
        started = threading.Event()

        def block():
            started.set()
            release.wait(timeout=5.0)

        try:
            assert pool.submit(block)
            assert started.wait(timeout=5.0)
            assert pool.submit(block)      # fills the queue
            assert not pool.submit(block)  # no room left
        finally:
            release.set()
            pool.shutdown(wait=True, timeout=5.0)

    def test_failing_task_does_not_kill_worker(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        done = threading.Event()

        def fail():
            raise ValueError("boom")

        try:
            pool.submit(fail)
            pool.submit(done.set)
            assert done.wait(timeout=5.0)
            assert pool.stats["tasks"]["failed"] == 1
        finally:
            pool.shutdown(wait=True, timeout=5.0)


@pytest.fixture
def socket_pair():
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    client_side.close()
    server_side.close()


class TestConnection:

    def test_reads_one_request_at_a_time(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)

        client_side.sendall(
            b"POST /users HTTP/1.1\r\nContent-Length: 2\r\n\r\n{}"
            b"GET /users HTTP/1.1\r\n\r\n"
        )

        first = conn.read_request()
        second = conn.read_request()

        assert first.endswith(b"\r\n\r\n{}")
        assert second.startswith(b"GET /users")
        assert conn.requests_handled == 2

    def test_body_split_across_packets(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)

        def send_slowly():
            client_side.sendall(b"PUT /users/1 HTTP/1.1\r\nContent-Length: 4\r\n\r\n{")
            time.sleep(0.05)
            client_side.sendall(b'"":')

        sender = threading.Thread(target=send_slowly)
        sender.start()
        data = conn.read_request()
        sender.join()

        assert data.endswith(b'{"":')

    def test_client_close_returns_none(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)

        client_side.shutdown(socket.SHUT_WR)
        assert conn.read_request() is None

    def test_first_request_timeout(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=0.1)

        with pytest.raises(TimeoutError):
            conn.read_request()

    def test_oversize_request(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(
            socket=server_side, address=("127.0.0.1", 1), timeout=2.0,
            buffer_size=1024, max_request_size=1024,
        )

        client_side.sendall(b"GET / HTTP/1.1\r\nX-Pad: " + b"a" * 4096)
        with pytest.raises(RequestTooLarge):
            conn.read_request()

    def test_close_is_idempotent(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)

        conn.close()
        conn.close()
        assert conn.state == ConnectionState.CLOSED
