"""Identifier-keyed attachment store and the attachment predicates.

Each node that owns attachments gets a physical directory under the
attachment root, laid out as ``<root>/<id[:2]>/<id[2:]>``. A ``DIR``
property on the node overrides that location. Nodes below an ancestor that
sets the inherit property share the ancestor's directory instead of having
their own.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from attachtree.mirror.errors import MissingAncestorError
from attachtree.models import MirrorSettings, OutlineNode
from attachtree.outline import OutlineStore

logger = logging.getLogger("attachtree.attachments")


class AttachmentStore:
    def __init__(self, outline: OutlineStore, settings: MirrorSettings):
        self.outline = outline
        self.settings = settings

    # ── inheritance ────────────────────────────────────────────────

    def attach_dir_inherited(self, node: OutlineNode) -> bool:
        source = self.outline.flag_source(node, self.settings.inherit_property)
        return source is not None and source is not node

    def owning_ancestor(self, node: OutlineNode) -> OutlineNode:
        """Nearest ancestor whose attachment directory is its own."""
        for ancestor in self.outline.ancestors(node):
            if not self.attach_dir_inherited(ancestor):
                return ancestor
        raise MissingAncestorError(node.title)

    # ── physical directories ───────────────────────────────────────

    def _own_dir(self, node: OutlineNode) -> Optional[Path]:
        explicit = (node.properties.get(self.settings.dir_property) or "").strip()
        if explicit:
            path = Path(explicit).expanduser()
            return path if path.is_absolute() else self.outline.base_dir / path
        if not node.id:
            return None
        return self._id_dir(node.id)

    def _id_dir(self, node_id: str) -> Path:
        return self.settings.attach_root / node_id[:2] / node_id[2:]

    def get_physical_dir(self, node: OutlineNode) -> Optional[Path]:
        """Where the node's attachments live, without creating anything.

        Returns ``None`` for a node that has no identifier yet. The returned
        directory may not exist.
        """
        if self.attach_dir_inherited(node):
            return self.get_physical_dir(self.owning_ancestor(node))
        return self._own_dir(node)

    def get_or_create_physical_dir(self, node: OutlineNode) -> Path:
        if self.attach_dir_inherited(node):
            return self.get_or_create_physical_dir(self.owning_ancestor(node))
        node_id = self.outline.ensure_id(node)
        path = self._own_dir(node) or self._id_dir(node_id)
        if not path.is_dir():
            path.mkdir(parents=True, exist_ok=True)
            logger.info("Created attachment directory %s for %r", path, node.title)
        return path

    def list_files(self, path: Optional[Path]) -> set[str]:
        """Names of real attachment files in ``path``, skipping bookkeeping entries."""
        if path is None or not path.is_dir():
            return set()
        skipped = set(self.settings.ignored_files) | {self.settings.symlinks_dir}
        return {entry.name for entry in path.iterdir() if entry.name not in skipped}

    # ── predicates ─────────────────────────────────────────────────

    def has_attachment_tag(self, node: OutlineNode) -> bool:
        return self.settings.attach_tag in node.tags

    def has_own_attachment(self, node: OutlineNode) -> bool:
        """Whether ``node`` directly carries attachment data.

        The attachment tag wins; the directory listing is the fallback signal
        and can be switched off with ``detect_files``.
        """
        if self.attach_dir_inherited(node):
            return False
        if self.has_attachment_tag(node):
            return True
        if not self.settings.detect_files:
            return False
        return bool(self.list_files(self._own_dir(node)))

    def subtree_has_attachment(self, node: OutlineNode) -> bool:
        return any(self.has_own_attachment(candidate) for candidate in node.iter_subtree())
