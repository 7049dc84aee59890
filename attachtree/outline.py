"""Outline store: node lookup, lazy identifiers and property inheritance."""
from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Iterator, Optional

import yaml

from attachtree import config
from attachtree.models import OutlineDocument, OutlineNode, is_truthy
from attachtree.parsers.outline import parse_outline_file, write_outline_file

logger = logging.getLogger("attachtree.outline")


class OutlineStore:
    """Holds one outline document and answers structural queries about it.

    Identifiers are allocated on first need and written back to the
    document file (when the store has one) so they never change afterwards.
    """

    def __init__(self, document: OutlineDocument, path: Optional[Path] = None):
        self.document = document
        self.path = path
        self._by_id: dict[str, OutlineNode] = {}
        self._dirty = False
        self._reindex()

    @classmethod
    def load(cls, path: Path) -> OutlineStore:
        store = cls(parse_outline_file(path), path=path)
        logger.info("Loaded outline %s (%d nodes)", path, len(store._by_id))
        return store

    def _reindex(self) -> None:
        self._by_id.clear()
        for node in self.document.nodes:
            node._parent = None
            node.link_children()
        for node in self.walk():
            if node.id:
                self._by_id[node.id] = node

    @property
    def base_dir(self) -> Path:
        """Directory of the outline document (the working directory when unsaved)."""
        if self.path is not None:
            return self.path.resolve().parent
        return Path.cwd()

    @property
    def dirty(self) -> bool:
        return self._dirty

    def save(self) -> None:
        if self.path is None or not self._dirty:
            return
        write_outline_file(self.path, self.document)
        self._dirty = False
        logger.info("Saved outline %s", self.path)

    # ── structure ──────────────────────────────────────────────────

    def roots(self) -> list[OutlineNode]:
        return list(self.document.nodes)

    def walk(self) -> Iterator[OutlineNode]:
        for node in self.document.nodes:
            yield from node.iter_subtree()

    def find(self, node_id: str) -> Optional[OutlineNode]:
        return self._by_id.get(node_id)

    def get_children(self, node: OutlineNode) -> list[OutlineNode]:
        return list(node.children)

    def get_parent(self, node: OutlineNode) -> Optional[OutlineNode]:
        return node.parent

    def get_title(self, node: OutlineNode) -> str:
        return node.title

    def ancestors(self, node: OutlineNode) -> Iterator[OutlineNode]:
        parent = node.parent
        while parent is not None:
            yield parent
            parent = parent.parent

    # ── identifiers ────────────────────────────────────────────────

    def ensure_id(self, node: OutlineNode) -> str:
        if node.id:
            self._by_id.setdefault(node.id, node)
            return node.id
        node.id = str(uuid.uuid4())
        self._by_id[node.id] = node
        self._dirty = True
        logger.debug("Assigned id %s to %r", node.id, node.title)
        return node.id

    # ── properties ─────────────────────────────────────────────────

    def flag_source(self, node: OutlineNode, name: str) -> Optional[OutlineNode]:
        """Return the nearest node (``node`` itself or an ancestor) that sets ``name``.

        Only the nearest setting counts: an explicit false value on a closer
        node stops inheritance and yields ``None``.
        """
        current: Optional[OutlineNode] = node
        while current is not None:
            if name in current.properties:
                return current if is_truthy(current.properties[name]) else None
            current = current.parent
        return None

    def get_inherited_flag(self, node: OutlineNode, name: str) -> bool:
        return self.flag_source(node, name) is not None


def read_directory_settings(directory: Path) -> dict:
    """Load the directory-scoped settings file next to an outline document."""
    settings_path = directory / config.LOCAL_VARIABLES_FILE
    if not settings_path.is_file():
        return {}
    try:
        data = yaml.safe_load(settings_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        logger.warning("Ignoring unreadable %s: %s", settings_path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: expected a mapping", settings_path)
        return {}
    return data


def directory_mirror_root(directory: Path) -> Optional[Path]:
    raw = read_directory_settings(directory).get("mirror_root")
    if not raw:
        return None
    root = Path(str(raw)).expanduser()
    if not root.is_absolute():
        root = directory / root
    return root
