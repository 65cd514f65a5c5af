"""
=============================================================================
REQUEST LOG
=============================================================================

One line per request that got far enough to be parsed:

    {"timestamp": "2026-10-19T09:14:03.221408+00:00", "remote_endpoint": "127.0.0.1:51234", "method": "GET", "path": "/index.html", "version": "HTTP/1.1"}

=============================================================================
WHERE THE LINES GO
=============================================================================

Each AccessLog emits on its own child of the "tcpwebserver.access"
logger ("tcpwebserver.access.1", ".2", ...). AccessLog.open()
attaches an append-mode FileHandler with a bare "%(message)s" format,
so the file contains nothing but the JSON lines - easy to grep, easy to
feed to jq or a log shipper. While the file is attached the records do
not propagate, so they are not repeated on the diagnostic console.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   conn thread 1 ──┐                                                 │
    │   conn thread 2 ──┼──► "tcpwebserver.access.N" ──────► FileHandler │
    │   conn thread 3 ──┘          (handler lock)              (mode "a") │
    └─────────────────────────────────────────────────────────────────────┘

Every logging.Handler serializes emit() with its own lock, so records
from concurrent connections never interleave within a line.

=============================================================================
BEST EFFORT
=============================================================================

A request must be answered whether or not it could be logged. record()
catches everything that can go wrong while building or emitting the
entry; the logging module itself already routes I/O errors in handlers
to Handler.handleError() instead of raising.

=============================================================================
"""

import itertools
import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from .http.request import RequestLine


logger = logging.getLogger(__name__)

# Parent of every AccessLog's logger; diagnostics about the log itself
# go to `logger`
access_logger = logging.getLogger("tcpwebserver.access")
_instance_ids = itertools.count(1)


@dataclass(frozen=True)
class RequestLogRecord:
    """
    Structured log entry for one request.

    Fields:
        timestamp:        ISO-8601 UTC time the request was parsed
        remote_endpoint:  Client "ip:port"
        method:           Method token as received
        path:             Raw path token as received (not decoded)
        version:          Version token as received
    """

    timestamp: str
    remote_endpoint: str
    method: str
    path: str
    version: str

    @classmethod
    def from_request(cls, request: RequestLine, remote_endpoint: str) -> "RequestLogRecord":
        """Build a record for a parsed request, stamped with the current time."""
        return cls(
            timestamp=datetime.now(timezone.utc).isoformat(),
            remote_endpoint=remote_endpoint,
            method=request.method,
            path=request.path,
            version=request.version,
        )

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        """Serialize as a single self-contained JSON line."""
        return json.dumps(self.to_dict())


class AccessLog:
    """
    Append-only request log.

    Usage:
        access_log = AccessLog()
        access_log.open("access.log")
        access_log.record(request, conn.remote_endpoint)
        ...
        access_log.close()
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        """
        Args:
            log: Logger to emit records on. By default each AccessLog gets
                 its own child of "tcpwebserver.access", so two servers in
                 one process never write into each other's file.
        """
        if log is None:
            log = access_logger.getChild(str(next(_instance_ids)))
        self._logger = log
        self._handler: Optional[logging.FileHandler] = None

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def path(self) -> Optional[Path]:
        """File the log appends to, or None if no file is attached."""
        if self._handler is None:
            return None
        return Path(self._handler.baseFilename)

    def open(self, path: Union[str, Path]) -> None:
        """
        Start appending records to a file.

        The parent directory is created if needed. Opening again replaces
        the previous file handler.
        """
        self.close()

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler.setLevel(logging.INFO)

        self._logger.addHandler(handler)
        self._logger.setLevel(logging.INFO)
        # The file is the destination; don't repeat every line on the console
        self._logger.propagate = False
        self._handler = handler

    def close(self) -> None:
        """Detach and close the file handler, if any."""
        if self._handler is None:
            return
        self._logger.removeHandler(self._handler)
        self._logger.propagate = True
        self._handler.close()
        self._handler = None

    def record(self, request: RequestLine, remote_endpoint: str) -> None:
        """
        Log one request. Never raises.
        """
        try:
            entry = RequestLogRecord.from_request(request, remote_endpoint)
            self._logger.info(entry.to_json())
        except Exception as e:
            logger.debug(f"Failed to write request log record: {e}")
