"""
=============================================================================
LISTENING SOCKET AND ACCEPT LOOP
=============================================================================

Owns the listening socket: bind, listen, accept in a loop, stop on a
signal. What happens to each accepted connection is the caller's
business - the accept loop only wraps the socket in a Connection and
hands it over.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a TCP socket
    2. bind()      Reserve IP:PORT (0.0.0.0:8080 = all interfaces)
    3. listen()    Let the OS queue incoming connections (backlog)
    4. accept()    Take the next connection; returns a NEW socket for
                   that client while the listening socket keeps listening
    5. close()     Release the listening socket, exactly once, on shutdown

    port 8080 ──► [listening socket] ──accept()──► Connection ──► handler
                        │                                        │
                        │ stays open until shutdown              └─ starts
                        ▼                                           a thread
                   close() once

=============================================================================
SHUTDOWN
=============================================================================

accept() blocks. To notice a shutdown request the listening socket has a
timeout (poll_interval, 1 second by default), which turns the loop into:

    while not shutdown_requested:
        try:
            accept()          # at most poll_interval seconds
        except timeout:
            continue          # check the flag again

The flag is a threading.Event owned by this server instance. It is set
by shutdown(), which the SIGINT/SIGTERM handlers call, and which tests
or an embedding application can call from any thread.

Connections that were already accepted are NOT interrupted: their
threads keep running until they have sent their response.

=============================================================================
"""

import errno
import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Accepts TCP connections and hands each one to a callback.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        start() and shutdown()                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler)                                                    │
    │        ├──► _create_socket()   socket() + options + accept timeout   │
    │        ├──► bind(), listen()                                         │
    │        ├──► _setup_signals()   SIGINT/SIGTERM → shutdown()           │
    │        └──► _accept_loop()     until the shutdown event is set       │
    │                 └──► handler(Connection(...))                        │
    │        finally:                                                      │
    │            _cleanup()          restore signals, close socket         │
    │                                                                      │
    │    shutdown()                  set the shutdown event                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle_connection(conn: Connection):
            ...  # must not block: start a thread

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        """
        Set up the server without touching the network.

        Args:
            config: Server configuration (host, port, backlog, timeouts).

        Note: The socket is not created until start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None

        # Cancellation flag: set once, checked by the accept loop
        self._shutdown_event = threading.Event()

        # Set once the socket is listening; lets tests wait for startup
        self._ready_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """True while the accept loop is active."""
        return self._ready_event.is_set() and not self._shutdown_event.is_set()

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        Once listening this is the real address, so with port=0 it reports
        the port the OS picked.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Avoid "Address already in use" while the previous socket sits
        # in TIME_WAIT after a restart
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Send small responses immediately instead of batching (Nagle)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() returns at least this often so the loop can check the
        # shutdown flag
        sock.settimeout(self.config.poll_interval)

        return sock

    def _setup_signals(self):
        """
        Route SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) to shutdown().

        signal.signal() only works on the main thread. When the server runs
        on another thread, handlers are left alone and shutdown() has to be
        called directly.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"{signal_name} received")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Put back whatever handlers were installed before start()."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Start accepting connections. Blocks until shutdown() is called.

        Args:
            connection_handler: Called with each new Connection on the
                                accept thread. It must hand the connection
                                off (e.g. to a new thread) and return
                                quickly, or it stalls the accept loop.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._shutdown_event.clear()
        self._ready_event.clear()

        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Cannot listen on {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until the shutdown event is set.

        The event is checked between accepts; with the socket timeout that
        is at least once per poll_interval.

        A failed accept() costs one connection, not the server. When the
        process is out of file descriptors the loop backs off for one
        poll_interval so in-flight connections can release theirs.
        """
        while not self._shutdown_event.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._shutdown_event.is_set() or self._socket.fileno() == -1:
                    # The listening socket was closed under us
                    break
                logger.error(f"accept() failed: {e}")
                if e.errno in (errno.EMFILE, errno.ENFILE):
                    self._shutdown_event.wait(self.config.poll_interval)
                continue

            logger.debug(f"Connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
            )

            try:
                connection_handler(conn)
            except Exception as e:
                # A failed hand-off loses this connection, not the server
                logger.exception(f"[{conn.id}] Failed to dispatch connection: {e}")
                conn.close()

    def shutdown(self):
        """
        Request shutdown. Safe to call from any thread or a signal handler,
        and more than once.
        """
        if self._shutdown_event.is_set():
            return
        logger.info("Shutdown requested, no longer accepting connections")
        self._shutdown_event.set()

    def _cleanup(self):
        """Restore signal handlers and close the listening socket."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        self._ready_event.clear()
        logger.info("Listening socket closed")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the server is listening.

        Returns:
            True if the server is listening, False on timeout.
        """
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until shutdown has been requested.

        Returns:
            True if shutdown was requested, False on timeout.
        """
        return self._shutdown_event.wait(timeout)
