"""Pure path computations for the mirror tree.

Nothing in this module touches the filesystem beyond reading the
directory-scoped settings file; ``create_if_missing`` only allocates node
identifiers so that a path can be computed before the directories exist.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from attachtree.attachments import AttachmentStore
from attachtree.models import MirrorSettings, OutlineNode
from attachtree.naming import sanitize_title
from attachtree.outline import OutlineStore, directory_mirror_root


class MirrorPathResolver:
    def __init__(self, outline: OutlineStore, attachments: AttachmentStore, settings: MirrorSettings):
        self.outline = outline
        self.attachments = attachments
        self.settings = settings

    def mirror_root(self) -> Path:
        """Directory holding the entries of top-level nodes.

        A ``mirror_root`` in the outline directory's settings file wins over
        the configured root; without either, the outline's own directory is
        used.
        """
        base_dir = self.outline.base_dir
        scoped = directory_mirror_root(base_dir)
        if scoped is not None:
            return scoped
        if self.settings.mirror_root is not None:
            return self.settings.mirror_root
        return base_dir

    def _physical_dir(self, node: OutlineNode, create_if_missing: bool) -> Optional[Path]:
        if create_if_missing:
            owner = node
            if self.attachments.attach_dir_inherited(node):
                owner = self.attachments.owning_ancestor(node)
            self.outline.ensure_id(owner)
        return self.attachments.get_physical_dir(node)

    def node_links_dir(self, node: OutlineNode, create_if_missing: bool = False) -> Optional[Path]:
        """``<physical dir>/<symlinks dir>`` of the node (or of its owning ancestor)."""
        physical = self._physical_dir(node, create_if_missing)
        if physical is None:
            return None
        return physical / self.settings.symlinks_dir

    def resolve_mirror_path(
        self,
        node: OutlineNode,
        create_if_missing: bool = False,
        exclude_data_suffix: bool = True,
    ) -> Optional[Path]:
        """Location of the node's entry in its parent's mirror directory.

        Inherited nodes have no entry of their own and resolve to their owning
        ancestor's unchanged; no segment for the inherited node is appended.
        Returns ``None`` when the title sanitizes to nothing, or
        when the parent has no identifier and ``create_if_missing`` is off.
        """
        if self.attachments.attach_dir_inherited(node):
            owner = self.attachments.owning_ancestor(node)
            return self.resolve_mirror_path(owner, create_if_missing, exclude_data_suffix)

        name = sanitize_title(node.title)
        if not name:
            return None

        parent = self.outline.get_parent(node)
        if parent is None:
            entry = self.mirror_root() / name
        else:
            parent_links = self.node_links_dir(parent, create_if_missing)
            if parent_links is None:
                return None
            entry = parent_links / name

        if exclude_data_suffix:
            return entry
        return entry / self.settings.data_link

    def browse_path(self, node: OutlineNode) -> Optional[Path]:
        """Human path through the mirror, e.g. ``<mirror root>/Report/Scan A``.

        Inherited nodes pass through: they contribute no segment of their own.
        Returns ``None`` if any mirrored ancestor has an empty name.
        """
        segments: list[str] = []
        current: Optional[OutlineNode] = node
        while current is not None:
            if not self.attachments.attach_dir_inherited(current):
                name = sanitize_title(current.title)
                if not name:
                    return None
                segments.append(name)
            current = self.outline.get_parent(current)
        return self.mirror_root().joinpath(*reversed(segments))
