"""Root endpoint."""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok


def hello(request: HTTPRequest) -> HTTPResponse:
    """GET / - plain-text greeting, handy as a liveness check."""
    return ok("Hello, World!")
