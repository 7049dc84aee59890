"""Reconcile the symlink mirror tree against the live outline.

Layout on disk, for a node ``N`` with physical attachment directory ``P``::

    P/<symlinks dir>/                  N's mirror directory
    P/<symlinks dir>/<data link>   ->  P            (only if N owns attachments)
    P/<symlinks dir>/<child name>  ->  <child P>/<symlinks dir>
    <mirror root>/<top-level name> ->  <top-level P>/<symlinks dir>

Every call recomputes the desired state from the outline and the attachment
predicates; nothing about the mirror is stored anywhere else. Each step only
mutates what differs, so re-running on an unchanged outline is a no-op.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Optional

from attachtree.attachments import AttachmentStore
from attachtree.mirror.errors import NamingCollisionError
from attachtree.mirror.resolver import MirrorPathResolver
from attachtree.models import MirrorSettings, OutlineNode, SyncReport
from attachtree.naming import sanitize_title
from attachtree.outline import OutlineStore

logger = logging.getLogger("attachtree.mirror")

STATE_ABSENT = "absent"
STATE_DATA_ONLY = "data-only"
STATE_BRANCH = "branch"


@dataclass
class SyncSession:
    """Visited-set guard for one top-level synchronization call."""

    visited: set[str] = field(default_factory=set)
    report: SyncReport = field(default_factory=SyncReport)

    def enter(self, node_id: str) -> bool:
        if node_id in self.visited:
            return False
        self.visited.add(node_id)
        self.report.visitedCount = len(self.visited)
        return True


def _describe(path: Path) -> str:
    if path.is_symlink():
        return "symlink"
    if path.is_dir():
        return "directory"
    return "file"


def _link_target(path: Path) -> Path:
    target = Path(os.readlink(path))
    if not target.is_absolute():
        target = path.parent / target
    return Path(os.path.normpath(target))


def _same_location(left: Path, right: Path) -> bool:
    return os.path.normpath(os.path.abspath(left)) == os.path.normpath(os.path.abspath(right))


class MirrorSynchronizer:
    def __init__(
        self,
        outline: OutlineStore,
        attachments: AttachmentStore,
        resolver: MirrorPathResolver,
        settings: MirrorSettings,
    ):
        self.outline = outline
        self.attachments = attachments
        self.resolver = resolver
        self.settings = settings

    # ── queries ────────────────────────────────────────────────────

    def mirrored_children(self, node: OutlineNode) -> Iterator[OutlineNode]:
        """Children that get entries in ``node``'s mirror directory.

        Inherited children share their owner's directory, so their own
        mirrored descendants surface here in their place.
        """
        for child in self.outline.get_children(node):
            if self.attachments.attach_dir_inherited(child):
                yield from self.mirrored_children(child)
            else:
                yield child

    def node_state(self, node: OutlineNode) -> str:
        if self.attachments.attach_dir_inherited(node):
            return STATE_ABSENT
        if any(self.attachments.subtree_has_attachment(child) for child in self.mirrored_children(node)):
            return STATE_BRANCH
        if self.attachments.has_own_attachment(node):
            return STATE_DATA_ONLY
        return STATE_ABSENT

    def is_mirror_link(self, path: Path) -> bool:
        """True for symlinks this module creates for child entries."""
        if not path.is_symlink():
            return False
        return _link_target(path).name == self.settings.symlinks_dir

    # ── commands ───────────────────────────────────────────────────

    def synchronize(
        self,
        node: OutlineNode,
        session: Optional[SyncSession] = None,
        recurse_children: bool = True,
    ) -> SyncReport:
        """Bring ``node``'s part of the mirror in line with the outline.

        Ancestors are synchronized first (without descending into their other
        children) so the directory that hosts ``node``'s entry exists. With
        ``recurse_children`` the node's children are synchronized and stale
        entries are pruned.
        """
        if session is None:
            session = SyncSession()
        node_id = self.outline.ensure_id(node)
        if not session.enter(node_id):
            logger.debug("Skipping %r: already synchronized in this session", node.title)
            return session.report
        if self.attachments.attach_dir_inherited(node):
            logger.debug("Skipping %r: attachment directory is inherited", node.title)
            return session.report

        physical = self.attachments.get_or_create_physical_dir(node)
        links_dir = self._ensure_links_dir(physical, session)
        self._reconcile_data_link(node, physical, links_dir, session)
        self._register_with_parent(node, links_dir, session)
        if recurse_children:
            self._prune_children(node, links_dir, session)
        return session.report

    def synchronize_root(self, session: Optional[SyncSession] = None) -> SyncReport:
        """Reconcile the mirror root: one entry per top-level subtree holding attachments."""
        if session is None:
            session = SyncSession()
        root = self.resolver.mirror_root()
        self._ensure_directory(root, session, allow_symlink=True)

        existing = {entry.name for entry in root.iterdir() if entry.is_symlink()}
        self._reconcile_entries(self.outline.roots(), existing, session)
        self._remove_stale(root, existing, session)
        return session.report

    # ── steps ──────────────────────────────────────────────────────

    def _ensure_directory(self, path: Path, session: SyncSession, allow_symlink: bool = False) -> None:
        if (path.is_symlink() and not allow_symlink) or (path.exists() and not path.is_dir()):
            raise NamingCollisionError(path, "directory", _describe(path))
        if not path.is_dir():
            path.mkdir(parents=True, exist_ok=True)
            session.report.record("mkdir", path)
            logger.info("Created mirror directory %s", path)

    def _ensure_links_dir(self, physical: Path, session: SyncSession) -> Path:
        links_dir = physical / self.settings.symlinks_dir
        self._ensure_directory(links_dir, session)
        return links_dir

    def _reconcile_data_link(
        self,
        node: OutlineNode,
        physical: Path,
        links_dir: Path,
        session: SyncSession,
    ) -> None:
        link = links_dir / self.settings.data_link
        owns = self.attachments.has_own_attachment(node)
        if link.is_symlink():
            if not owns:
                link.unlink()
                session.report.record("unlink", link)
                logger.info("Removed data link %s (%r no longer owns attachments)", link, node.title)
            elif not _same_location(_link_target(link), physical):
                self._relink(link, physical, session)
            return
        if link.exists():
            raise NamingCollisionError(link, "data symlink", _describe(link))
        if owns:
            self._link(link, physical, session)

    def _register_with_parent(self, node: OutlineNode, links_dir: Path, session: SyncSession) -> None:
        if not sanitize_title(node.title):
            return

        if not self.attachments.subtree_has_attachment(node):
            entry = self.resolver.resolve_mirror_path(node)
            if (
                entry is not None
                and self.is_mirror_link(entry)
                and _same_location(_link_target(entry), links_dir)
            ):
                entry.unlink()
                session.report.record("unlink", entry)
                logger.info("Removed mirror entry %s (%r holds no attachments)", entry, node.title)
            return

        host = self._host(node)
        if host is not None:
            self.synchronize(host, session, recurse_children=False)
        entry = self.resolver.resolve_mirror_path(node, create_if_missing=True)
        if entry is None:
            return
        if host is None:
            self._ensure_directory(entry.parent, session, allow_symlink=True)
        self._ensure_entry(entry, links_dir, node, session)

    def _prune_children(self, node: OutlineNode, links_dir: Path, session: SyncSession) -> None:
        existing = {
            entry.name
            for entry in links_dir.iterdir()
            if entry.name != self.settings.data_link
        }
        self._reconcile_entries(self.mirrored_children(node), existing, session)
        self._remove_stale(links_dir, existing, session)

    def _reconcile_entries(self, nodes: Iterable[OutlineNode], existing: set[str], session: SyncSession) -> None:
        """Synchronize the nodes whose entries belong in one mirror directory.

        Names that stay wanted are discarded from ``existing``. A node that lost
        its last attachment but still has an entry, or whose own mirror
        directory still holds links, is synchronized too so those links go away.
        """
        for child in nodes:
            name = sanitize_title(child.title)
            if not name:
                continue
            if self.attachments.subtree_has_attachment(child):
                self.synchronize(child, session)
                existing.discard(name)
            elif child.id and (name in existing or self._has_mirror_links(child)):
                self.synchronize(child, session)

    # ── primitives ─────────────────────────────────────────────────

    def _has_mirror_links(self, node: OutlineNode) -> bool:
        links_dir = self.resolver.node_links_dir(node)
        if links_dir is None or not links_dir.is_dir():
            return False
        return any(entry.is_symlink() for entry in links_dir.iterdir())

    def _host(self, node: OutlineNode) -> Optional[OutlineNode]:
        """Node whose mirror directory holds ``node``'s entry (``None`` at top level)."""
        parent = self.outline.get_parent(node)
        if parent is None:
            return None
        if self.attachments.attach_dir_inherited(parent):
            return self.attachments.owning_ancestor(parent)
        return parent

    def _ensure_entry(self, entry: Path, links_dir: Path, node: OutlineNode, session: SyncSession) -> None:
        if entry.is_symlink():
            current = _link_target(entry)
            if _same_location(current, links_dir):
                return
            if current.exists():
                logger.warning(
                    "Mirror entry %s already points at %s; %r shares its name with a sibling",
                    entry, current, node.title,
                )
                return
            self._relink(entry, links_dir, session)
            return
        if entry.exists():
            raise NamingCollisionError(entry, "mirror symlink", _describe(entry))
        self._link(entry, links_dir, session)

    def _remove_stale(self, directory: Path, names: set[str], session: SyncSession) -> None:
        for name in sorted(names):
            path = directory / name
            if self.is_mirror_link(path):
                path.unlink()
                session.report.record("unlink", path)
                logger.info("Pruned stale mirror entry %s", path)
            else:
                logger.debug("Leaving %s in place: not a mirror symlink", path)

    def _link(self, path: Path, target: Path, session: SyncSession) -> None:
        target = Path(os.path.abspath(target))
        path.symlink_to(target, target_is_directory=True)
        session.report.record("link", path, target)
        logger.info("Linked %s -> %s", path, target)

    def _relink(self, path: Path, target: Path, session: SyncSession) -> None:
        target = Path(os.path.abspath(target))
        path.unlink()
        path.symlink_to(target, target_is_directory=True)
        session.report.record("relink", path, target)
        logger.info("Relinked %s -> %s", path, target)
