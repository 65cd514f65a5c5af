"""
=============================================================================
WEB SERVER
=============================================================================

Ties the components together: the socket server accepts, a thread per
connection runs the request state machine, the parser, resolver and
response serializer do the work.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │    WebServer    │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │ SocketServer │    │RequestParser │    │ PathResolver │        │
    │    │ (accepting)  │    │ (first line) │    │ (filesystem) │        │
    │    └──────┬───────┘    └──────────────┘    └──────────────┘        │
    │           │                                                          │
    │           ▼  one thread each                                         │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │  Connection  │    │  ErrorPages  │    │  AccessLog   │        │
    │    └──────────────┘    └──────────────┘    └──────────────┘        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE (process_connection)
=============================================================================

    READING     recv() once ── nothing? ─────────────────────► close
        │
    PARSING     request line ── not 3 tokens? ── 400 ────────► close
        │
        ├── append to request log (best effort)
        │
        │       method ── not GET? ── 405 ───────────────────► close
        │
    VALIDATING  resolve path ── ".."/extension? ── 403 ──────► close
        │                    ── no file? ── 404 ─────────────► close
        │
    RESPONDING  read file, send 200 ─────────────────────────► close

Every branch ends in `with conn:` closing the socket. Every branch except
the empty read sends exactly one response.

=============================================================================
"""

import logging
import threading
from typing import Optional, Tuple

from .access_log import AccessLog
from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState
from .handlers import PathResolver, PathRejected
from .http import (
    RequestParser, HTTPParseError,
    HTTPResponse, ErrorPages, HTTPStatus, ok,
)


logger = logging.getLogger(__name__)


class WebServer:
    """
    Static file server for a single document root.

    Usage:
        server = WebServer(ServerConfig(document_root="./site"))
        server.run()   # blocks until Ctrl+C / SIGTERM

    Or from another thread:
        server.shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Uses defaults if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser()
        self._resolver = PathResolver(
            self.config.document_root,
            index_file=self.config.index_file,
        )
        self._error_pages = ErrorPages(
            self.config.document_root,
            error_page=self.config.error_page,
            placeholder=self.config.error_placeholder,
        )
        self._access_log = AccessLog()

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the real port once listening."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, configure_logging: bool = True):
        """
        Start the server. Blocks until shutdown.

        Args:
            configure_logging: Set up root logging from config.log_level.
                               Embedding applications that configure
                               logging themselves pass False.

        Raises:
            OSError: If the port cannot be bound.
        """
        if configure_logging:
            self._setup_logging()

        if self.config.access_log:
            self._access_log.open(self.config.access_log)

        logger.info(f"Serving {self.config.document_root} on {self.config.host}:{self.config.port}")

        try:
            self._socket_server.start(self._handle_connection)
        finally:
            self._access_log.close()
            logger.info("Server stopped")

    def shutdown(self):
        """
        Stop accepting connections. In-flight requests finish on their own.
        """
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is listening. Returns False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        logging.basicConfig(
            level=self.config.logging_level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("tcpwebserver").setLevel(self.config.logging_level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Run a connection on its own thread.

        Called by SocketServer on the accept thread, so this only starts the
        thread and returns. Threads are non-daemon: after shutdown the
        interpreter waits for in-flight requests before exiting.
        """
        thread = threading.Thread(
            target=self.process_connection,
            args=(conn,),
            name=f"conn-{conn.id}",
        )
        thread.start()

    def process_connection(self, conn: Connection):
        """
        Handle one connection from first read to close.

        Never raises: a failure in one connection is logged and must not
        reach the accept loop or any other connection.

        Args:
            conn: The client connection. Closed when this returns.
        """
        with conn:
            try:
                self._respond(conn)
            except Exception as e:
                logger.exception(f"[{conn.id}] Connection error: {e}")
                # Only a request that was read and not yet answered gets a 500
                if conn.state in (ConnectionState.PARSING, ConnectionState.VALIDATING):
                    self._send_error(conn, HTTPStatus.INTERNAL_SERVER_ERROR)

    def _respond(self, conn: Connection):
        # ─────────────────────────────────────────────────────────────────
        # READING
        # ─────────────────────────────────────────────────────────────────
        raw_request = conn.read_request()
        if raw_request is None:
            logger.debug(f"[{conn.id}] Closed by peer before sending a request")
            return

        # ─────────────────────────────────────────────────────────────────
        # PARSING
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.PARSING
        try:
            request = self._parser.parse(raw_request)
        except HTTPParseError as e:
            logger.debug(f"[{conn.id}] {e}")
            self._send_error(conn, HTTPStatus(e.status_code))
            return

        self._access_log.record(request, conn.remote_endpoint)

        try:
            self._parser.check_method(request)
        except HTTPParseError as e:
            logger.debug(f"[{conn.id}] {e}")
            self._send_error(conn, HTTPStatus(e.status_code))
            return

        # ─────────────────────────────────────────────────────────────────
        # VALIDATING
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.VALIDATING
        try:
            target = self._resolver.resolve(request.path)
        except PathRejected as e:
            logger.debug(f"[{conn.id}] {e}")
            self._send_error(conn, e.status)
            return

        # ─────────────────────────────────────────────────────────────────
        # RESPONDING
        # ─────────────────────────────────────────────────────────────────
        try:
            body = target.path.read_bytes()
        except PermissionError:
            self._send_error(conn, HTTPStatus.FORBIDDEN)
            return
        except OSError as e:
            logger.error(f"[{conn.id}] Error reading {target.path}: {e}")
            self._send_error(conn, HTTPStatus.INTERNAL_SERVER_ERROR)
            return

        self._send(conn, ok(body, target.content_type))

    def _send(self, conn: Connection, response: HTTPResponse):
        if conn.send_response(response.to_bytes()):
            logger.debug(f"[{conn.id}] {response.status_line} ({len(response.body)} bytes)")

    def _send_error(self, conn: Connection, status: HTTPStatus):
        """Send the error page for a status."""
        self._send(conn, self._error_pages.render(status))
