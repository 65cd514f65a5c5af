"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    # Serve ./webroot on 0.0.0.0:8080
    python -m tcpwebserver

    # Another directory and port
    python -m tcpwebserver --root ./site --port 3000

    # Log requests somewhere else, or not to a file at all
    python -m tcpwebserver --access-log /var/log/tcpwebserver.log
    python -m tcpwebserver --no-access-log

Environment variables (see ServerConfig.from_env) supply the defaults;
flags override them. Ctrl+C stops the server and exits with status 0.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .server import WebServer
from .config import ServerConfig, LOG_LEVELS


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    """Build the argument parser, with defaults taken from the environment."""
    parser = argparse.ArgumentParser(
        prog="tcpwebserver",
        description="Minimal static file HTTP server on raw TCP sockets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m tcpwebserver                        # ./webroot on port 8080
  python -m tcpwebserver --root ./site -p 3000  # Custom root and port
  python -m tcpwebserver --no-access-log        # Don't write access.log
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Address to bind to (default: {defaults.host})"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--root", "-r",
        default=defaults.document_root,
        help=f"Document root to serve (default: {defaults.document_root})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────
    log_group = parser.add_mutually_exclusive_group()
    log_group.add_argument(
        "--access-log",
        default=defaults.access_log,
        help=f"Append-only request log file (default: {defaults.access_log})"
    )
    log_group.add_argument(
        "--no-access-log",
        action="store_const",
        const=None,
        dest="access_log",
        help="Don't write the request log to a file"
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        type=str.upper,
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"tcpwebserver {__version__}"
    )

    return parser


def main(argv=None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status: 0 after a normal shutdown, 1 if the server
        could not start.
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"tcpwebserver: invalid environment: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)

    defaults.host = args.host
    defaults.port = args.port
    defaults.document_root = args.root
    defaults.access_log = args.access_log
    defaults.log_level = args.log_level

    try:
        server = WebServer(defaults)
        server.run()
    except ValueError as e:
        print(f"tcpwebserver: invalid configuration: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"tcpwebserver: could not start: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
