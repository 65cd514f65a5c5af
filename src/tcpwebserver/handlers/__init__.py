"""
Request path handling.

PathResolver is the security boundary between URLs and the filesystem:
a path either becomes a ResolvedTarget or raises PathRejected.
"""

from .static import PathResolver, ResolvedTarget, PathRejected

__all__ = ["PathResolver", "ResolvedTarget", "PathRejected"]
