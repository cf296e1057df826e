"""
=============================================================================
MIDDLEWARE FRAMEWORK
=============================================================================

Middleware is code that runs between receiving a request and calling the
route handler. Each one receives the request plus ``next``, a callable for
the rest of the chain:

    request ──► LoggingMiddleware ──► ... ──► Router.handle ──► handler
    response ◄──────────────────────────────────────────────────────┘

A middleware may inspect or change the request, short-circuit with its own
response, or post-process the response on the way back. The first one
added is the outermost.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class Timing(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.headers["X-Seen"] = "1"
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """Ordered middleware chain wrapped around a final handler."""

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the composed handler.

        Wrapping runs in reverse so that the first middleware added ends up
        outermost and sees the request first.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    @staticmethod
    def _create_wrapped_handler(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        # A separate function so each closure binds its own pair.
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
