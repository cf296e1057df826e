"""
=============================================================================
ACCESS LOGGING
=============================================================================

One log line per request on the ``usersapi.access`` logger, in either
Apache-style text:

    127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "POST /users" 201 78 1.42ms

or JSON, for log aggregators:

    {"request_id": "a1b2c3d4", "method": "POST", "path": "/users", ...}

Every response also gets an ``X-Request-ID`` header carrying the same id,
so a client can quote it when reporting a problem.

Add this middleware first so it times and records everything behind it,
including requests that end in an error response.

=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Optional
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("usersapi.access")


@dataclass
class RequestLog:
    """Structured access log entry."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

        pipeline.add(LoggingMiddleware(log_format="json"))

    Args:
        log_format: "text" or "json".
        include_request_id: Add the X-Request-ID response header.
        log_level: Level access lines are emitted at.
        skip_paths: Paths that are served but not logged.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = request.get_header("x-request-id") or str(uuid.uuid4())[:8]
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        if request.path in self.skip_paths:
            return response

        query = "&".join(
            f"{key}={value}"
            for key, values in request.query_params.items()
            for value in values
        )

        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=query,
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        return response
