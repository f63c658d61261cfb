"""
=============================================================================
HTTP SERVER
=============================================================================

    SocketServer ──Connection──► ThreadPool ──► _serve_connection(conn)
                                    │                  │
                  queue full or     │                  ▼  per request
                  waited too long   ▼           RequestParser.parse
                                 _reject(conn)         │
                                 503 + close           ▼
                                             middleware( router.handle )
                                                       │
                                                       ▼
                                             conn.send(response)
                                             keep-alive? loop : close

Problems found before a request reaches the router (a read timeout, an
oversized or unparseable request, no free worker) get a JSON
``{"error": ...}`` reply and the connection is closed.

=============================================================================
"""

from functools import partial
from http import HTTPStatus
from typing import Optional, Tuple
import logging

from .config import ServerConfig
from .core import Connection, RequestTooLarge, SocketServer, ThreadPool
from .http import HTTPParseError, HTTPRequest, HTTPResponse, RequestParser, ResponseBuilder, Router
from .middleware import Middleware, MiddlewarePipeline, NextHandler


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Threaded HTTP/1.1 server around a Router.

        server = HTTPServer(ServerConfig(port=3000))
        server.use(LoggingMiddleware())
        server.router.add("GET", "/feed", handlers.feed)
        server.run()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self.router = Router()
        self._middleware = MiddlewarePipeline()
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._listener = SocketServer(self.config)
        self._pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._handler: Optional[NextHandler] = None
        self._running = False

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware; the first one added is outermost."""
        self._middleware.add(middleware)
        self._handler = None
        return self

    @property
    def address(self) -> Tuple[str, int]:
        return self._listener.address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._listener.wait_until_ready(timeout)

    def shutdown(self) -> None:
        """Stop accepting; ``run()`` then drains the pool and returns."""
        self._listener.shutdown()

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """Run one request through middleware and router, no socket needed."""
        if self._handler is None:
            self._handler = self._middleware.wrap(self.router.handle)
        try:
            return self._handler(request)
        except Exception:
            logger.exception(f"Unhandled error for {request.method} {request.path}")
            return (ResponseBuilder()
                .status(HTTPStatus.INTERNAL_SERVER_ERROR)
                .json({"error": "Internal Server Error"})
                .build())

    def run(self) -> None:
        """Serve until a signal or ``shutdown()``. Blocks."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("hermes").setLevel(level)

        self._pool.start()
        self._running = True
        for route in self.router.routes():
            logger.info(f"  {route.method:6} {route.pattern}")
        logger.info(
            f"{self.config.server_name} ready with {len(self._pool)} workers "
            f"and {len(self._middleware)} middleware"
        )

        try:
            self._listener.serve(self._accept)
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self._running = False
            self._pool.shutdown(timeout=30.0)
            logger.info("Server stopped")

    def _accept(self, conn: Connection) -> None:
        queued = self._pool.submit(
            self._serve_connection,
            args=(conn,),
            timeout=self.config.timeout,
            on_expire=partial(self._reject, conn, "timed out waiting for a worker"),
        )
        if not queued:
            self._reject(conn, "worker queue full")

    def _reject(self, conn: Connection, reason: str) -> None:
        logger.warning(f"[{conn.id}] rejecting connection: {reason}")
        self._fail(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
        conn.close()

    def _serve_connection(self, conn: Connection) -> None:
        with conn:
            while self._running:
                try:
                    raw = conn.read_request()
                except TimeoutError:
                    self._fail(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    return
                except RequestTooLarge as e:
                    self._fail(conn, HTTPStatus.REQUEST_ENTITY_TOO_LARGE, str(e))
                    return
                if raw is None:
                    return

                try:
                    request = self._parser.parse(raw, conn.address)
                except HTTPParseError as e:
                    logger.info(f"[{conn.id}] bad request: {e}")
                    self._fail(conn, e.status, str(e))
                    return

                response = self.dispatch(request)
                keep_alive = self.config.keep_alive and request.is_keep_alive
                response.headers["Connection"] = "keep-alive" if keep_alive else "close"

                if not conn.send(response.to_bytes(self.config.server_name)) or not keep_alive:
                    return

    def _fail(self, conn: Connection, status: HTTPStatus, message: str) -> None:
        response = (ResponseBuilder()
            .status(status)
            .json({"error": message})
            .close_connection()
            .build())
        conn.send(response.to_bytes(self.config.server_name))
