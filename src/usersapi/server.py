"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together:

    SocketServer ──accept──► ThreadPool ──► _process_connection (worker)
                                                 │
                                 Connection.read_request()
                                                 │
                                 RequestParser.parse()
                                                 │
                      MiddlewarePipeline ──► Router.handle ──► handler
                                                 │
                                 HTTPResponse.to_bytes() ──► socket

Failures that happen before a handler runs (timeouts, oversize or
malformed requests, a full worker queue) are answered here with a JSON
error and the connection is closed. An exception escaping a handler is
logged and answered with 500; the connection then continues normally.

=============================================================================
"""

import logging
from typing import Callable, List, Optional

from .config import ServerConfig
from .core.connection import Connection, ConnectionState, RequestTooLarge
from .core.socket_server import SocketServer
from .core.thread_pool import ThreadPool
from .http.request import HTTPParseError, HTTPRequest, RequestParser
from .http.response import HTTPResponse, ResponseBuilder, internal_error
from .http.router import Router
from .http.status_codes import HTTPStatus
from .middleware.base import Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Multi-threaded HTTP/1.1 server.

        server = HTTPServer(ServerConfig(port=8080))

        @server.get("/")
        def index(request):
            return ok("Hello, World!")

        server.use(LoggingMiddleware())
        server.run()

    Raises:
        ValueError: If the configuration is invalid.
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._router = router or Router()
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._shutdown_hooks: List[Callable[[], None]] = []
        self._running = False

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware. The first one added runs outermost."""
        self._middleware.add(middleware)
        return self

    def on_shutdown(self, hook: Callable[[], None]) -> "HTTPServer":
        """Run ``hook`` once the server has stopped, e.g. to close a store."""
        self._shutdown_hooks.append(hook)
        return self

    @property
    def router(self) -> Router:
        return self._router

    def get(self, path: str, **kwargs):
        return self._router.get(path, **kwargs)

    def post(self, path: str, **kwargs):
        return self._router.post(path, **kwargs)

    def put(self, path: str, **kwargs):
        return self._router.put(path, **kwargs)

    def delete(self, path: str, **kwargs):
        return self._router.delete(path, **kwargs)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Serve until SIGINT/SIGTERM or stop(). Blocks.

        Raises:
            OSError: If the address cannot be bound.
        """
        if host:
            self.config.host = host
        if port:
            self.config.port = port

        self._setup_logging()
        self._running = True
        self._handler = self._middleware.wrap(self._router.handle)
        self._thread_pool.start()

        logger.info(
            f"Starting {self.config.server_name} on {self.config.host}:{self.config.port} "
            f"({self.config.min_workers}-{self.config.max_workers} workers)"
        )
        for line in self._router.describe().splitlines():
            logger.info(line)

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self):
        """Ask a running server to shut down. Safe from any thread."""
        self._socket_server.shutdown()

    def wait_until_started(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_started(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("usersapi").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=self.config.timeout)

        for hook in self._shutdown_hooks:
            try:
                hook()
            except Exception as e:
                logger.exception(f"Shutdown hook {hook!r} failed: {e}")

        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Queue a connection on the pool; 503 if the queue is full."""
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            timeout=self.config.timeout,
        )

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (runs on a worker thread)."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        logger.debug(f"[{conn.id}] Parse error: {e}")
                        self._send_error(conn, e.status_code, str(e))
                        break

                    conn.state = ConnectionState.PROCESSING
                    response = self._dispatch(conn, request)
                    keep_alive = request.is_keep_alive and self.config.keep_alive

                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                        response.headers.setdefault(
                            "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                        )
                    else:
                        response.headers["Connection"] = "close"

                    if not conn.send_response(response.to_bytes(self.config.server_name)):
                        break
                    if not keep_alive:
                        break

                    conn.set_keep_alive()

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break

                except RequestTooLarge:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, "Request too large")
                    break

                except OSError as e:
                    logger.debug(f"[{conn.id}] Connection error: {e}")
                    break

    def _dispatch(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Unhandled error in {request.method} {request.path}: {e}")
            return internal_error()

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        response = (ResponseBuilder()
            .status(status)
            .json({"error": message})
            .close_connection()
            .build())
        conn.send_response(response.to_bytes(self.config.server_name))
