"""
=============================================================================
CORE NETWORKING COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ SocketServer (socket_server.py)                                     │
    │ - Owns the listening socket                                         │
    │ - Accept loop, polled so it can notice shutdown                     │
    │ - SIGINT/SIGTERM → graceful stop                                    │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │ Connection (connection.py)                                          │
    │ - One accepted client socket                                        │
    │ - Single read, single sendall, graceful close                       │
    │ - Lifecycle state for logging                                       │
    └─────────────────────────────────────────────────────────────────────┘

THREAD-PER-CONNECTION MODEL
    Every accepted connection gets its own thread. There is no pool and
    no limit: the accept loop never waits for a handler, and handlers
    share nothing but the read-only document root and the request log.

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState

__all__ = [
    "SocketServer",     # Accepts connections
    "Connection",       # Wrapper for one client socket
    "ConnectionState",  # Connection lifecycle states
]
