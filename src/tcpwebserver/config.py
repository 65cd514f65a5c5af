"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the server in one dataclass. The defaults suit
a plain deployment: all interfaces, port 8080, ./webroot, an
8 KB request buffer.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    Priority (highest to lowest):

    1. Command-line arguments       python -m tcpwebserver --port 3000
    2. Environment variables        HTTP_PORT=3000 python -m tcpwebserver
    3. Defaults below

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the web server.

    NETWORK
    - host, port, backlog, buffer_size, timeout, poll_interval

    FILES
    - document_root, index_file, error_page, error_placeholder

    LOGGING
    - access_log, log_level
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind to. "0.0.0.0" listens on all interfaces."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free port (tests)."""

    backlog: int = 128
    """Maximum number of connections the OS queues before refusing."""

    buffer_size: int = 8192
    """
    Size of the single read performed per connection (8 KB).
    Requests with longer headers are parsed from the first 8 KB only.
    """

    timeout: Optional[float] = 30.0
    """
    Per-connection socket timeout in seconds.
    A client that connects and sends nothing is dropped after this long.
    None = wait forever.
    """

    poll_interval: float = 1.0
    """
    Accept timeout in seconds. The accept loop checks for shutdown at
    least this often.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    document_root: str = "webroot"
    """Directory files are served from."""

    index_file: str = "index.html"
    """File served for "/"."""

    error_page: str = "error.html"
    """Custom error page inside document_root, used when present."""

    error_placeholder: str = "{{status_code}}"
    """Token in the custom error page replaced with the numeric status."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    access_log: Optional[str] = "access.log"
    """
    File the request log is appended to, one JSON line per request.
    None = records only go to a "tcpwebserver.access.N" logger.
    """

    log_level: str = "INFO"
    """Diagnostic logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        HTTP_HOST           Bind address (default: 0.0.0.0)
        HTTP_PORT           Port (default: 8080)
        HTTP_TIMEOUT        Connection timeout in seconds (default: 30)
        HTTP_DOCUMENT_ROOT  Served directory (default: webroot)
        HTTP_ACCESS_LOG     Request log file; empty disables the file
                            (default: access.log)
        HTTP_LOG_LEVEL      Logging level (default: INFO)
        """
        access_log = os.getenv("HTTP_ACCESS_LOG", "access.log")
        return cls(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            document_root=os.getenv("HTTP_DOCUMENT_ROOT", "webroot"),
            access_log=access_log or None,
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
        )

    @property
    def logging_level(self) -> int:
        """log_level as a logging module constant."""
        return getattr(logging, self.log_level.upper())

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup so a bad value fails immediately instead of at
        the first request.

        Raises:
            ValueError: Describing the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")

        if not self.error_placeholder:
            raise ValueError("error_placeholder must not be empty")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")
