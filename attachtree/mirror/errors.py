"""Errors raised while resolving or synchronizing the mirror tree."""
from __future__ import annotations

from pathlib import Path


class MirrorError(RuntimeError):
    """Base class for mirror synchronization failures."""


class NamingCollisionError(MirrorError):
    """A path the mirror needs is occupied by something it must not overwrite."""

    def __init__(self, path: Path, expected: str, found: str = ""):
        self.path = Path(path)
        self.expected = expected
        self.found = found
        detail = f" (found {found})" if found else ""
        super().__init__(f"Naming collision at {self.path}: expected {expected}{detail}")


class MissingAncestorError(MirrorError):
    """An inherited attachment directory has no ancestor that owns it."""

    def __init__(self, node_title: str):
        self.node_title = node_title
        super().__init__(f"No ancestor owns the attachment directory inherited by {node_title!r}")
