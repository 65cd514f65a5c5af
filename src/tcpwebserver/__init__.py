"""
=============================================================================
TCPWEBSERVER - Static files over raw TCP sockets
=============================================================================

A minimal HTTP/1.1 static file server written directly against the
socket API: no http.server, no framework.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   GET only · one request per connection · Connection: close         │
    │   .html / .css / .js (and extensionless) files from one directory   │
    │   ".." anywhere in the path → 403                                   │
    │   optional error.html with a {{status_code}} placeholder            │
    │   one JSON line per request in an append-only log                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    tcpwebserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m tcpwebserver)
    ├── server.py            # WebServer: per-connection state machine
    ├── config.py            # ServerConfig dataclass
    ├── access_log.py        # RequestLogRecord + append-only AccessLog
    ├── core/
    │   ├── socket_server.py # Listening socket, accept loop, shutdown
    │   └── connection.py    # One client socket
    ├── http/
    │   ├── request.py       # Request line parsing
    │   ├── response.py      # Response serialization, error pages
    │   ├── status_codes.py  # HTTPStatus enum
    │   └── mime_types.py    # Extension allow-list
    └── handlers/
        └── static.py        # PathResolver (traversal guard, 403/404)

=============================================================================
QUICK START
=============================================================================

    from tcpwebserver import WebServer, ServerConfig

    server = WebServer(ServerConfig(document_root="./site", port=8080))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import WebServer
from .config import ServerConfig

__all__ = ["WebServer", "ServerConfig", "__version__"]
