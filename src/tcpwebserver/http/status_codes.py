"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The handful of status codes this server can answer with, plus their
reason phrases.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  200   │ OK                  - file found and served              │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  400   │ Bad Request         - request line is not 3 tokens       │
    │  403   │ Forbidden           - ".." in path or extension not      │
    │        │                       on the allow-list                   │
    │  404   │ Not Found           - no regular file at resolved path   │
    │  405   │ Method Not Allowed  - anything other than GET            │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  500   │ Internal Server Error - file could not be read           │
    └────────┴───────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    Using IntEnum means a status compares equal to its number:

        HTTPStatus.NOT_FOUND == 404   # True
        f"{HTTPStatus.NOT_FOUND:d}"   # "404"
    """

    OK = 200

    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405

    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── Reason phrase
                      └───────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_error(self) -> bool:
        """Check if this is an error status code (4xx or 5xx)."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
