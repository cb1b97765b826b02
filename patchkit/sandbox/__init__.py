"""Workspace path safety and atomic file I/O."""

from .filesystem import (
    PathEscapeError,
    SymLinkError,
    atomic_write,
    read_text,
    resolve_safe_path,
)

__all__ = [
    "PathEscapeError",
    "SymLinkError",
    "atomic_write",
    "read_text",
    "resolve_safe_path",
]
