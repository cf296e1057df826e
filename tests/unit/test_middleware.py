"""
Unit tests for the middleware pipeline and access logging.
"""

import json
import logging

import pytest

from usersapi.http.request import HTTPRequest
from usersapi.http.response import HTTPResponse, ok
from usersapi.middleware import LoggingMiddleware, Middleware, MiddlewarePipeline


def make_request(path: str = "/users", **kwargs) -> HTTPRequest:
    return HTTPRequest(method="GET", path=path, client_address=("10.0.0.1", 4000), **kwargs)


class Tag(Middleware):
    """Appends its label to X-Trace on the way out."""

    def __init__(self, label: str, calls: list):
        self.label = label
        self.calls = calls

    def __call__(self, request, next):
        self.calls.append(self.label)
        response = next(request)
        trail = response.headers.get("X-Trace", "")
        response.headers["X-Trace"] = f"{trail}{self.label}"
        return response


class TestMiddlewarePipeline:

    def test_empty_pipeline_returns_handler(self):
        pipeline = MiddlewarePipeline()
        handler = pipeline.wrap(lambda request: ok("hi"))

        assert handler(make_request()).text == "hi"

    def test_order(self):
        calls = []
        pipeline = MiddlewarePipeline().add(Tag("a", calls)).add(Tag("b", calls))

        response = pipeline.wrap(lambda request: ok("hi"))(make_request())

        assert calls == ["a", "b"]
        assert response.headers["X-Trace"] == "ba"
        assert len(pipeline) == 2
        assert [m.name for m in pipeline] == ["Tag", "Tag"]

    def test_short_circuit(self):
        class Deny(Middleware):
            def __call__(self, request, next):
                return HTTPResponse(body=b"denied")

        reached = []
        handler = MiddlewarePipeline().add(Deny()).wrap(lambda request: reached.append(1))

        assert handler(make_request()).body == b"denied"
        assert reached == []


class TestLoggingMiddleware:

    def test_text_line(self, caplog):
        middleware = LoggingMiddleware()

        with caplog.at_level(logging.INFO, logger="usersapi.access"):
            middleware(make_request(query_params={"page": ["2"]}), lambda r: ok([]))

        line = caplog.records[-1].getMessage()
        assert line.startswith("10.0.0.1 - - [")
        assert '"GET /users?page=2" 200 2 ' in line

    def test_json_line(self, caplog):
        middleware = LoggingMiddleware(log_format="json")

        with caplog.at_level(logging.INFO, logger="usersapi.access"):
            middleware(make_request(), lambda r: ok({"id": 1}))

        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["method"] == "GET"
        assert entry["path"] == "/users"
        assert entry["status_code"] == 200
        assert entry["client_ip"] == "10.0.0.1"

    def test_request_id_header(self):
        response = LoggingMiddleware()(make_request(), lambda r: ok("x"))
        assert len(response.headers["X-Request-ID"]) == 8

    def test_incoming_request_id_is_reused(self):
        request = make_request(headers={"x-request-id": "abc123"})
        response = LoggingMiddleware()(request, lambda r: ok("x"))
        assert response.headers["X-Request-ID"] == "abc123"

    def test_skip_paths(self, caplog):
        middleware = LoggingMiddleware(skip_paths=["/"])

        with caplog.at_level(logging.INFO, logger="usersapi.access"):
            middleware(make_request("/"), lambda r: ok("Hello, World!"))

        assert caplog.records == []

    def test_handler_exception_is_logged_and_reraised(self, caplog):
        def boom(request):
            raise RuntimeError("kaput")

        with caplog.at_level(logging.ERROR, logger="usersapi.access"):
            with pytest.raises(RuntimeError):
                LoggingMiddleware()(make_request(), boom)

        assert "RuntimeError: kaput" in caplog.records[-1].getMessage()
