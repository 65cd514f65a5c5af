"""
=============================================================================
PATH RESOLVER
=============================================================================

Turns the raw path token of a request into a file on disk plus the
Content-Type to serve it with - or rejects it.

=============================================================================
RESOLUTION STEPS
=============================================================================

Each step either passes the path on or stops with a rejection. Nothing
partially resolved ever leaves this module.

    raw path "/css/site%20main.css"
        │
        ▼
    1. "/" → "/index.html" ───────────────────────────────────────────────
        │
        ▼
    2. Percent-decode           "/css/site main.css"
        │
        ▼
    3. Contains ".."?  ─── yes ──► 403 Forbidden
        │ no
        ▼
    4. Extension                "css"
        │
        ▼
    5. On the allow-list? ─── no ──► 403 Forbidden
        │ yes → "text/css"
        ▼
    6. document_root / "css/site main.css" is a regular file?
        │                         ─── no ──► 404 Not Found
        │ yes
        ▼
    7. ResolvedTarget(path, "text/css")

=============================================================================
THE TRAVERSAL GUARD IS A SUBSTRING CHECK
=============================================================================

Step 3 rejects ANY decoded path containing "..", not just ".." path
segments:

    /../secret.txt      → 403   (real traversal)
    /%2e%2e/secret.txt  → 403   (decoded before the check)
    /a..b.html          → 403   (harmless name, still rejected)

It also runs before the filesystem is touched, so the answer is 403
whether or not the target exists. The path is not canonicalized before
it is joined onto the document root; with ".." gone and the leading "/"
stripped, the join cannot climb above the root through path syntax.
Symlinks inside the document root are followed.

=============================================================================
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union
from urllib.parse import unquote

from ..http.mime_types import get_content_type
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class PathRejected(Exception):
    """
    Raised when a request path cannot be served.

    Carries the HTTP status to answer with (403 or 404).
    """

    def __init__(self, status: HTTPStatus, message: str):
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class ResolvedTarget:
    """A validated file to serve and its Content-Type."""

    path: Path
    content_type: str


class PathResolver:
    """
    Validates request paths against a document root.

    The resolver holds no per-request state, so one instance is shared by
    every connection thread.

    Usage:
        resolver = PathResolver("webroot")
        try:
            target = resolver.resolve("/index.html")
        except PathRejected as e:
            ...  # e.status is 403 or 404
    """

    def __init__(self, document_root: Union[str, Path], index_file: str = "index.html"):
        """
        Args:
            document_root: Directory that served files live under. It does
                           not have to exist; if it doesn't, every request
                           resolves to 404.
            index_file: File served for the bare "/" path.
        """
        self.document_root = Path(document_root)
        self.index_file = index_file

    def resolve(self, raw_path: str) -> ResolvedTarget:
        """
        Resolve a raw request path to a file.

        Args:
            raw_path: The path token from the request line, undecoded.

        Returns:
            The file to serve and its Content-Type.

        Raises:
            PathRejected: 403 for traversal or a disallowed extension,
                          404 if no regular file exists.
        """
        path = raw_path
        if path == "/":
            path = "/" + self.index_file

        path = unquote(path)

        if ".." in path:
            logger.warning(f"Path traversal attempt: {raw_path}")
            raise PathRejected(HTTPStatus.FORBIDDEN, f"Path contains '..': {path}")

        content_type = get_content_type(path)
        if content_type is None:
            logger.warning(f"Extension not allowed: {raw_path}")
            raise PathRejected(HTTPStatus.FORBIDDEN, f"Extension not allowed: {path}")

        full_path = self.document_root / path.lstrip("/")

        # is_file() is False for directories, and for names the OS can't
        # represent (e.g. a decoded NUL byte)
        if not full_path.is_file():
            raise PathRejected(HTTPStatus.NOT_FOUND, f"File not found: {path}")

        return ResolvedTarget(path=full_path, content_type=content_type)
