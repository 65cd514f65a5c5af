"""
=============================================================================
CONTENT-TYPE ALLOW-LIST
=============================================================================

Maps file extensions to the Content-Type they are served with.

This table is not a best-effort MIME guesser: it is a closed allow-list.
An extension that is not a key here is never served, whatever the file
contains. Adding a type is one line; forgetting one means 403, never a
fallback to application/octet-stream.

    ┌────────────────────────────────────────────────────────────────────┐
    │  extension   │  Content-Type                                       │
    ├──────────────┼─────────────────────────────────────────────────────┤
    │  (none)      │  text/html                                          │
    │  html        │  text/html                                          │
    │  css         │  text/css                                           │
    │  js          │  application/javascript                             │
    │  anything    │  (rejected)                                         │
    │  else        │                                                     │
    └──────────────┴─────────────────────────────────────────────────────┘

=============================================================================
WHAT COUNTS AS THE EXTENSION?
=============================================================================

The text after the last "." of the final path segment, lowercased:

    /index.html          → "html"
    /css/Site.CSS        → "css"
    /v1.2/readme         → ""        (the dot is in a directory name)
    /archive.tar.gz      → "gz"
    /.hidden             → "hidden"
    /trailing.           → ""

Note this differs from pathlib's ``suffix``, which treats a leading dot
as part of the name (``Path(".hidden").suffix == ""``).

=============================================================================
"""

from typing import Optional


CONTENT_TYPES = {
    "": "text/html",
    "html": "text/html",
    "css": "text/css",
    "js": "application/javascript",
}


def get_extension(path: str) -> str:
    """
    Extract the lowercased extension of the final path segment.

    Examples:
        >>> get_extension("/index.html")
        'html'

        >>> get_extension("/docs/README")
        ''
    """
    segment = path.rsplit("/", 1)[-1]
    if "." not in segment:
        return ""
    return segment.rsplit(".", 1)[1].lower()


def get_content_type(path: str) -> Optional[str]:
    """
    Look up the Content-Type for a path.

    Returns:
        The Content-Type, or None if the extension is not allowed.

    Examples:
        >>> get_content_type("/app.js")
        'application/javascript'

        >>> get_content_type("/app.py") is None
        True
    """
    return CONTENT_TYPES.get(get_extension(path))
