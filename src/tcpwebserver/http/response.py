"""
=============================================================================
HTTP RESPONSE SERIALIZATION
=============================================================================

One type, HTTPResponse, describes every response this server sends -
the 200 with a file body and every error page alike - and one method,
to_bytes(), turns it into wire format.

=============================================================================
WIRE FORMAT
=============================================================================

Every response has exactly these lines, in this order:

    HTTP/1.1 404 Not Found\r\n              ← status line
    Content-Type: text/html\r\n
    Content-Length: 87\r\n                   ← len(body) in BYTES
    Connection: close\r\n                    ← always; no keep-alive
    \r\n                                     ← blank line
    <!DOCTYPE html>...                       ← body, verbatim

Content-Length counts bytes, not characters. For "héllo" encoded as
UTF-8 that is 6, not 5 - which is why the body is stored as bytes and
measured after encoding.

Connection: close is unconditional. The server reads one request per
connection and closes it after the response, so it tells the client
not to wait for more.

=============================================================================
ERROR PAGES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      Error body selection                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   <document_root>/error.html exists and is readable?                │
    │        │                                                             │
    │        ├── yes ──► its content, with every "{{status_code}}"        │
    │        │           replaced by the numeric code ("404")             │
    │        │                                                             │
    │        └── no  ──► generated page: "Error 404: Not Found"           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The custom page is re-read for every error so it can be edited while the
server runs. It is only ever read, never written.

=============================================================================
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    Describes an HTTP response to be sent to the client.

        Handler builds           to_bytes()              Connection sends
        HTTPResponse    ─────►   serializes    ─────►    raw bytes
            │                       │                        │
        HTTPResponse(            b"HTTP/1.1 200 OK\\r\\n     sock.sendall(
          status=200,              Content-Type: ...         response_bytes
          content_type=...,        ...\\r\\n\\r\\n           )
          body=b"...")             <html>..."
    """

    status: HTTPStatus = HTTPStatus.OK
    content_type: str = "text/html"
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {self.status:d} {self.status.phrase}"

    @property
    def headers(self) -> dict[str, str]:
        """The headers in emission order."""
        return {
            "Content-Type": self.content_type,
            "Content-Length": str(len(self.body)),
            "Connection": "close",
        }

    def to_bytes(self) -> bytes:
        """
        Serialize the response to bytes for sending over a socket.

        Returns:
            Complete HTTP response ready for socket.sendall().
        """
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")

        # Empty line separates headers from body
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


def ok(body: bytes, content_type: str) -> HTTPResponse:
    """Create a 200 OK response carrying a file's content."""
    return HTTPResponse(status=HTTPStatus.OK, content_type=content_type, body=body)


def format_default_error_page(status: HTTPStatus) -> str:
    """
    Generate the built-in error page for a status.

    Used when the document root has no custom error page.
    """
    title = f"Error {status:d}: {status.phrase}"
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        f"<head><title>{title}</title></head>\n"
        f"<body><h1>{title}</h1></body>\n"
        "</html>\n"
    )


class ErrorPages:
    """
    Builds error responses, preferring a custom page from the document root.

    Usage:
        pages = ErrorPages("webroot")
        response = pages.render(HTTPStatus.NOT_FOUND)
        conn.send_response(response.to_bytes())
    """

    def __init__(
        self,
        document_root: Union[str, Path],
        error_page: str = "error.html",
        placeholder: str = "{{status_code}}",
    ):
        """
        Args:
            document_root: Directory that may contain the custom page.
            error_page: File name of the custom page inside document_root.
            placeholder: Literal token replaced by the numeric status code.
        """
        self.template_path = Path(document_root) / error_page
        self.placeholder = placeholder

    def body_for(self, status: HTTPStatus) -> bytes:
        """Get the error page body for a status, as bytes."""
        try:
            template = self.template_path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return format_default_error_page(status).encode("utf-8")

        return template.replace(self.placeholder, str(int(status))).encode("utf-8")

    def render(self, status: HTTPStatus) -> HTTPResponse:
        """Build the complete error response for a status."""
        return HTTPResponse(
            status=status,
            content_type="text/html",
            body=self.body_for(status),
        )
