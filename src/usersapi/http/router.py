"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) pairs to handler callables.

    GET    /              → index
    GET    /users         → UserHandlers.list_users
    POST   /users         → UserHandlers.create_user
    GET    /users/:id     → UserHandlers.get_user
    PUT    /users/:id     → UserHandlers.update_user
    DELETE /users/:id     → UserHandlers.delete_user

A ``:name`` segment matches exactly one raw path segment and is handed to
the handler percent-decoded, as a string in ``request.path_params``. Matching
happens before decoding, so ``/users/1%2F2`` reaches the ``:id`` route with
id "1/2" rather than becoming a three-segment path. Parsing that string (for
example into an integer id) is the handler's job, not the router's.

Each pattern is compiled once to a regex with named groups:

    /users/:id   →   ^/users/(?P<id>[^/]+)$

Matching is first-registered, first-matched. A path that exists under a
different method answers 405 with an Allow header; anything else is 404.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List
from urllib.parse import unquote
import logging
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """A URL pattern bound to a handler."""

    path: str
    method: Optional[str]            # None accepts any method
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    """The matched route and the path parameters pulled out of the URL."""

    route: Route
    params: Dict[str, str]


class Router:
    """
    HTTP request router with ``:param`` path segments.

    Routes can be added directly or with decorators:

        router = Router()
        router.add_route("/users", handlers.list_users, method="GET")

        @router.get("/")
        def index(request):
            return ok("Hello, World!")
    """

    def __init__(self):
        self._routes: List[Route] = []

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register a route.

        Args:
            path: URL pattern such as ``/users/:id``.
            handler: Callable taking an HTTPRequest and returning an HTTPResponse.
            method: HTTP method, or None for any.
            name: Optional label, shown in route listings.

        Returns:
            The registered Route.
        """
        pattern, param_names = self._compile_pattern(path)
        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            name=name or getattr(handler, "__name__", None),
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        logger.debug(f"Registered route {route.method or 'ANY'} {path}")
        return route

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str]]:
        """
        Compile ``/users/:id`` into ``^/users/(?P<id>[^/]+)$``.

        Returns:
            The compiled regex and the parameter names in order.
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")
            else:
                regex_parts.append(re.escape(segment))

        if len(regex_parts) == 1:
            regex_parts.append("/")  # root route

        regex_parts.append("$")
        return re.compile("".join(regex_parts)), param_names

    @staticmethod
    def _normalize(path: str) -> str:
        """Ensure a leading slash and drop a trailing one."""
        return "/" + path.strip("/") if path != "/" else "/"

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the first route matching method and path.

        Returns:
            RouteMatch, or None when nothing matches.
        """
        path = self._normalize(path)

        for route in self._routes:
            if route.method and route.method != method.upper():
                continue

            match = route._pattern.match(path)
            if match:
                params = {key: unquote(value) for key, value in match.groupdict().items()}
                return RouteMatch(route=route, params=params)

        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods registered for ``path``, for the 405 Allow header."""
        path = self._normalize(path)
        methods = set()

        for route in self._routes:
            if route._pattern.match(path):
                if route.method is None:
                    return ["DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT"]
                methods.add(route.method)

        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch a request.

        Injects the extracted parameters into ``request.path_params`` and
        calls the handler. Exceptions raised by the handler propagate to the
        caller (the server turns them into 500s).
        """
        match = self.match(request.method, request.path)

        if match:
            request.path_params = match.params
            return match.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)

        return not_found(f"No route matches {request.path}")

    # =========================================================================
    # DECORATORS
    # =========================================================================

    def route(
        self,
        path: str,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add_route; returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "GET", name)

    def post(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "POST", name)

    def put(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "PUT", name)

    def delete(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "DELETE", name)

    def patch(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "PATCH", name)

    def routes(self) -> List[Route]:
        """All registered routes, in registration order."""
        return list(self._routes)

    def describe(self) -> str:
        """
        One line per route, for the startup log:

              GET      /users
              POST     /users
              GET      /users/:id
        """
        return "\n".join(
            f"  {route.method or 'ANY':8} {route.path}" for route in self._routes
        )
