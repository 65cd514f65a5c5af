"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows about HTTP as a byte format, and nothing about
sockets or the filesystem.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST (request.py)                                                │
    │ Bytes → RequestLine(method, path, version), or HTTPParseError      │
    ├─────────────────────────────────────────────────────────────────────┤
    │ RESPONSE (response.py)                                              │
    │ HTTPResponse(status, content_type, body) → bytes                   │
    │ ErrorPages: custom error.html or generated page                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │ STATUS CODES (status_codes.py)                                      │
    │ HTTPStatus enum with reason phrases                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │ CONTENT TYPES (mime_types.py)                                       │
    │ Closed extension → Content-Type allow-list                         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import RequestLine, RequestParser, HTTPParseError, parse_request_line
from .response import HTTPResponse, ErrorPages, ok, format_default_error_page
from .status_codes import HTTPStatus
from .mime_types import CONTENT_TYPES, get_extension, get_content_type

__all__ = [
    # Request parsing
    "RequestLine",
    "RequestParser",
    "HTTPParseError",
    "parse_request_line",

    # Responses
    "HTTPResponse",
    "ErrorPages",
    "ok",
    "format_default_error_page",

    # Status codes
    "HTTPStatus",

    # Content types
    "CONTENT_TYPES",
    "get_extension",
    "get_content_type",
]
