"""Attachment-directory resolution with mirror synchronization as a step.

Every caller that wants a node's attachment directory goes through
``AttachmentService.attach_dir``. Resolving the directory and bringing the
mirror tree up to date happen together there, so the mirror follows the
outline without any other hook.
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from attachtree import config
from attachtree.attachments import AttachmentStore
from attachtree.mirror.resolver import MirrorPathResolver
from attachtree.mirror.synchronizer import MirrorSynchronizer, SyncSession
from attachtree.models import (
    AttachDirResult,
    MirrorSettings,
    NodeSummary,
    OutlineDocument,
    OutlineNode,
    SyncReport,
)
from attachtree.naming import sanitize_title
from attachtree.outline import OutlineStore

logger = logging.getLogger("attachtree.service")

_root_locks: dict[str, threading.RLock] = {}
_root_locks_guard = threading.Lock()


def _lock_for(mirror_root: Path) -> threading.RLock:
    """One lock per mirror root, shared by every service writing into it."""
    key = str(mirror_root.resolve())
    with _root_locks_guard:
        lock = _root_locks.get(key)
        if lock is None:
            lock = threading.RLock()
            _root_locks[key] = lock
        return lock


class AttachmentService:
    def __init__(self, outline: OutlineStore, settings: MirrorSettings):
        self.settings = settings
        self._bind(outline)

    @classmethod
    def from_outline_file(cls, path: Path, settings: Optional[MirrorSettings] = None) -> AttachmentService:
        if path.exists():
            outline = OutlineStore.load(path)
        else:
            logger.warning("Outline %s does not exist yet; starting with an empty outline", path)
            outline = OutlineStore(OutlineDocument(), path=path)
        if settings is None:
            settings = MirrorSettings.from_config(outline.base_dir)
        return cls(outline, settings)

    def _bind(self, outline: OutlineStore) -> None:
        self.outline = outline
        self.attachments = AttachmentStore(outline, self.settings)
        self.resolver = MirrorPathResolver(outline, self.attachments, self.settings)
        self.synchronizer = MirrorSynchronizer(outline, self.attachments, self.resolver, self.settings)

    def _lock(self) -> threading.RLock:
        return _lock_for(self.resolver.mirror_root())

    def reload(self) -> None:
        """Re-read the outline file, keeping the current settings."""
        if self.outline.path is None:
            return
        with self._lock():
            self._bind(OutlineStore.load(self.outline.path))

    # ── lookups ────────────────────────────────────────────────────

    def get_node(self, node_id: str) -> OutlineNode:
        node = self.outline.find(node_id)
        if node is None:
            raise ValueError(f"Node {node_id} not found")
        return node

    def summarize(self, node: OutlineNode) -> NodeSummary:
        inherited = self.attachments.attach_dir_inherited(node)
        browse = None if inherited else self.resolver.browse_path(node)
        return NodeSummary(
            id=node.id,
            title=node.title,
            mirrorName=sanitize_title(node.title),
            state=self.synchronizer.node_state(node),
            hasOwnAttachment=self.attachments.has_own_attachment(node),
            attachDirInherited=inherited,
            browsePath=str(browse) if browse is not None else None,
        )

    def list_nodes(self) -> list[NodeSummary]:
        return [self.summarize(node) for node in self.outline.walk()]

    def mirror_path(self, node: OutlineNode, exclude_data_suffix: bool = True) -> Optional[Path]:
        return self.resolver.resolve_mirror_path(node, exclude_data_suffix=exclude_data_suffix)

    def _current(self, node: OutlineNode) -> OutlineNode:
        """Map ``node`` onto the loaded document; a reload may have replaced it.

        Call with the lock held so the store cannot be rebound in between.
        """
        if any(candidate is node for candidate in self.outline.walk()):
            return node
        if node.id:
            return self.get_node(node.id)
        raise ValueError(f"Node {node.title!r} is not part of the loaded outline")

    # ── commands ───────────────────────────────────────────────────

    def attach_dir(self, node: OutlineNode, create: bool = True) -> Optional[AttachDirResult]:
        """Return the node's attachment directory, synchronizing the mirror on the way.

        Without ``create`` a node whose directory does not exist yet yields
        ``None`` and nothing is touched.
        """
        with self._lock():
            node = self._current(node)
            if not create:
                existing = self.attachments.get_physical_dir(node)
                if existing is None or not existing.is_dir():
                    return None
            node_id = self.outline.ensure_id(node)
            attach_dir = self.attachments.get_or_create_physical_dir(node)
            owner = node
            if self.attachments.attach_dir_inherited(node):
                owner = self.attachments.owning_ancestor(node)
            report = self.synchronizer.synchronize(owner)
            self.outline.save()
        mirror_path = self.resolver.resolve_mirror_path(node)
        return AttachDirResult(
            nodeId=node_id,
            attachDir=str(attach_dir),
            mirrorPath=str(mirror_path) if mirror_path is not None else None,
            report=report,
        )

    def sync_node(self, node: OutlineNode) -> SyncReport:
        with self._lock():
            node = self._current(node)
            report = self.synchronizer.synchronize(node, SyncSession())
            self.outline.save()
        return report

    def sync_all(self) -> SyncReport:
        with self._lock():
            report = self.synchronizer.synchronize_root(SyncSession())
            self.outline.save()
        logger.info(
            "Mirror sync finished: %d changes, %d nodes visited",
            len(report.changes), report.visitedCount,
        )
        return report


_service: Optional[AttachmentService] = None


def get_service() -> AttachmentService:
    global _service
    if _service is None:
        _service = AttachmentService.from_outline_file(config.OUTLINE_PATH)
    return _service
