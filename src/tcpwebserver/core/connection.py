"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket for the lifetime of one request.

=============================================================================
ONE READ, ONE RESPONSE, CLOSE
=============================================================================

This server speaks the simplest useful subset of HTTP/1.1:

    ┌─────────────────────────────────────────────────────────────────┐
    │                                                                  │
    │   TCP Connect                                                    │
    │       │                                                          │
    │       ├── recv(8192)       one read, request line + headers      │
    │       ├── sendall(...)     exactly one response                  │
    │       │                                                          │
    │   TCP Close                                                      │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

No keep-alive, no pipelining, no request bodies. Because TCP is a byte
stream, a single recv() is not guaranteed to return a whole request -
but a request line is tiny and in practice always arrives in the first
segment, which is the trade-off this server makes.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► READING ──► PARSING ──► VALIDATING ──► RESPONDING ──┐
              │            │             │                        │
              │            │             │                        ▼
              └────────────┴─────────────┴───────────────────► CLOSED

Any state can jump straight to CLOSED: an empty read closes without a
response, every error sends its response and then closes.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)

# Stop draining a client that keeps sending after the response
DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging and debugging."""
    NEW = "new"                # Just accepted, nothing read yet
    READING = "reading"        # Waiting on the single recv()
    PARSING = "parsing"        # Interpreting the request line
    VALIDATING = "validating"  # Resolving the path against the document root
    RESPONDING = "responding"  # Sending the response
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short random identifier used to correlate log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    def __post_init__(self):
        """Configure the socket once the dataclass fields are set."""
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def remote_endpoint(self) -> str:
        """Client address as "ip:port"."""
        return f"{self.client_ip}:{self.client_port}"

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read the request with a single recv().

        Returns:
            Up to buffer_size bytes, or None if there is nothing to answer:
            the peer closed without sending, the read failed (reset, abort),
            or nothing arrived before the timeout.
        """
        self.state = ConnectionState.READING

        try:
            data = self.socket.recv(self.buffer_size)
        except socket.timeout:
            logger.debug(f"[{self.id}] Read timed out")
            return None
        except OSError as e:
            # Reset, aborted, not connected: no one left to answer
            logger.debug(f"[{self.id}] Read failed before request: {e}")
            return None

        if not data:
            return None
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes to the client.

        Uses sendall() so a large file body is written completely; plain
        send() may write only part of it.

        Returns:
            True if send succeeded, False if the connection was lost.
            Failed sends are not retried.
        """
        self.state = ConnectionState.RESPONDING

        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            # ConnectionResetError, BrokenPipeError and timeouts are all OSError
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully. Safe to call more than once.

        1. shutdown(SHUT_WR): send FIN, the client sees end-of-response
        2. Drain: read whatever the client still sends until it closes.
           Closing a socket with unread data makes the kernel send RST,
           which can destroy a response the client hasn't read yet.
        3. close(): release the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(0.5)
            drained = 0
            while drained < DRAIN_LIMIT:
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age * 1000:.1f}ms")

    def __enter__(self):
        """
        Context manager entry.

            with conn:
                data = conn.read_request()
                conn.send_response(response)
            # Connection closed here, whichever way the block exits
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
