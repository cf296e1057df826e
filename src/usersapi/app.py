"""
=============================================================================
APPLICATION FACTORY
=============================================================================

The composition root: builds the store, hands it to the handlers and
registers the routes. Nothing is global, so tests can build as many
independent apps as they like, each with its own store.

    GET     /            hello
    GET     /users       UserHandlers.list_users
    POST    /users       UserHandlers.create_user
    GET     /users/:id   UserHandlers.get_user
    PUT     /users/:id   UserHandlers.update_user
    DELETE  /users/:id   UserHandlers.delete_user

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .handlers.index import hello
from .handlers.users import UserHandlers
from .http.router import Router
from .middleware.logging import LoggingMiddleware
from .server import HTTPServer
from .store.base import UserStore
from .store.sqlite import SQLiteUserStore


logger = logging.getLogger(__name__)


def register_routes(router: Router, handlers: UserHandlers) -> Router:
    """Attach the service routes to ``router``."""
    router.add_route("/", hello, method="GET")
    router.add_route("/users", handlers.list_users, method="GET")
    router.add_route("/users", handlers.create_user, method="POST")
    router.add_route("/users/:id", handlers.get_user, method="GET")
    router.add_route("/users/:id", handlers.update_user, method="PUT")
    router.add_route("/users/:id", handlers.delete_user, method="DELETE")
    return router


def create_app(
    config: Optional[ServerConfig] = None,
    store: Optional[UserStore] = None,
) -> HTTPServer:
    """
    Build a ready-to-run server.

    Args:
        config: Server configuration; ``ServerConfig.from_env()`` if omitted.
        store: Store to use. Defaults to a SQLiteUserStore at
            ``config.database``, which is closed when the server stops.

    Example:
        app = create_app(ServerConfig(port=3000), store=InMemoryUserStore())
        app.run()
    """
    config = config or ServerConfig.from_env()
    config.validate()

    owns_store = store is None
    if owns_store:
        store = SQLiteUserStore(config.database)

    router = register_routes(Router(), UserHandlers(store))

    server = HTTPServer(config, router=router)
    server.use(LoggingMiddleware(log_format=config.log_format))
    if owns_store:
        server.on_shutdown(store.close)

    logger.debug(f"Application created with {type(store).__name__}")
    return server
