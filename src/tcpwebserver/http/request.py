"""
=============================================================================
HTTP REQUEST LINE PARSER
=============================================================================

Turns the raw bytes of a single socket read into a RequestLine.

This server only ever looks at the FIRST line of a request. Headers are
read off the wire (they arrive in the same buffer) but never interpreted,
and there is no body because only GET is accepted.

=============================================================================
WHAT WE PARSE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    GET /css/site.css HTTP/1.1\r\n      ◄── request line (parsed)    │
    │    ─┬─ ──────┬────── ────┬───                                       │
    │     │        │           │                                           │
    │   Method    Path      Version                                        │
    │                                                                      │
    │    Host: localhost:8080\r\n            ◄── headers (ignored)        │
    │    User-Agent: curl/8.0\r\n                                          │
    │    \r\n                                                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PARSING RULES
=============================================================================

1. Decode the buffer as UTF-8 (invalid bytes are replaced, not fatal).

2. Split on CRLF and throw away empty segments. The first segment left
   is the request line. No segments at all → 400.

3. Split the request line on SINGLE spaces. Exactly three tokens are
   required, otherwise → 400:

       "GET / HTTP/1.1"       → ["GET", "/", "HTTP/1.1"]        ok
       "GET /"                → ["GET", "/"]                    400
       "GET  / HTTP/1.1"      → ["GET", "", "/", "HTTP/1.1"]    400
       "GET /a b HTTP/1.1"    → 4 tokens                        400

4. The method is compared in uppercase; only GET passes → otherwise 405.
   Step 4 is a separate call (check_method) because the request is
   logged between parsing and the method check.

=============================================================================
KNOWN LIMITATION: ONE READ
=============================================================================

The connection performs exactly one recv() of up to 8 KB. A request
whose headers are longer is not detected - the request line is almost
always in the first few hundred bytes, so parsing simply proceeds on
whatever was captured. A request line split across two TCP segments is
likewise only seen in part and is usually rejected with 400.

=============================================================================
"""

from dataclasses import dataclass


class HTTPParseError(Exception):
    """
    Raised when the request line cannot be accepted.

    Carries the HTTP status code that should be returned to the client:

        400 Bad Request         - not exactly three tokens
        405 Method Not Allowed  - method is not GET
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class RequestLine:
    """
    The three tokens of an HTTP request line.

    Frozen: once parsed, the request cannot be altered by later stages.
    The path is the raw token exactly as it appeared on the wire
    (still percent-encoded); decoding is the resolver's job.
    """

    method: str
    path: str
    version: str

    @property
    def normalized_method(self) -> str:
        """The method uppercased, as used for the GET check."""
        return self.method.upper()


class RequestParser:
    """
    Parses the first line of a raw request buffer.

    Usage:
        parser = RequestParser()
        request = parser.parse(b"GET /index.html HTTP/1.1\\r\\n\\r\\n")
        parser.check_method(request)   # raises HTTPParseError(405) if not GET
    """

    ALLOWED_METHODS = frozenset({"GET"})

    def parse(self, data: bytes) -> RequestLine:
        """
        Parse raw request bytes into a RequestLine.

        Args:
            data: The bytes captured by the connection's single read.

        Returns:
            The parsed request line.

        Raises:
            HTTPParseError: (400) if there is no request line or it does not
                            split into exactly three tokens.
        """
        text = data.decode("utf-8", errors="replace")

        lines = [line for line in text.split("\r\n") if line]
        if not lines:
            raise HTTPParseError("Empty request")

        parts = lines[0].split(" ")
        if len(parts) != 3:
            raise HTTPParseError(f"Malformed request line: {lines[0]!r}")

        method, path, version = parts
        return RequestLine(method=method, path=path, version=version)

    def check_method(self, request: RequestLine) -> None:
        """
        Reject any method other than GET.

        Raises:
            HTTPParseError: (405) for a disallowed method.
        """
        if request.normalized_method not in self.ALLOWED_METHODS:
            raise HTTPParseError(
                f"Method not allowed: {request.method}",
                status_code=405,
            )


def parse_request_line(data: bytes) -> RequestLine:
    """
    Convenience function: parse and method-check in one call.

    The server itself calls the two steps separately so the request is
    logged before the method is checked.
    """
    parser = RequestParser()
    request = parser.parse(data)
    parser.check_method(request)
    return request
