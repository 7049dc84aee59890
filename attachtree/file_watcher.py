"""File watcher service using watchfiles.

Watches the outline document and re-synchronizes the mirror tree from the
root whenever the document is modified or replaced.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from watchfiles import awatch, Change

from attachtree.mirror.errors import MirrorError

logger = logging.getLogger("attachtree.watcher")


class FileWatcher:
    """Background watcher that reloads the outline and resyncs on change."""

    def __init__(self):
        self._task: Optional[asyncio.Task] = None
        self._running = False

    async def start(self, service, outline_path: Path) -> None:
        """Start watching the outline document in a background task."""
        if self._running:
            logger.warning("File watcher already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._watch_loop(service, outline_path))
        logger.info(f"File watcher started for {outline_path}")

    async def stop(self) -> None:
        """Stop the file watcher."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("File watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def _watch_loop(self, service, outline_path: Path) -> None:
        watch_dir = outline_path.resolve().parent
        if not watch_dir.exists():
            logger.warning("Outline directory %s does not exist, watcher has nothing to monitor", watch_dir)
            self._running = False
            return

        try:
            async for changes in awatch(watch_dir):
                if not self._running:
                    break
                if not self._outline_changed(changes, outline_path):
                    continue
                logger.info("Outline %s changed, resyncing mirror...", outline_path)
                try:
                    await asyncio.to_thread(service.reload)
                    await asyncio.to_thread(service.sync_all)
                except (MirrorError, ValueError, OSError) as e:
                    logger.error(f"Error syncing mirror after outline change: {e}")
        except asyncio.CancelledError:
            logger.info("File watcher task cancelled")
        finally:
            self._running = False

    def _outline_changed(self, changes: set[tuple[Change, str]], outline_path: Path) -> bool:
        """Whether any change touches the outline document itself.

        Deletions are ignored; editors often delete and re-create on save.
        """
        target = outline_path.resolve()
        for change_type, path_str in changes:
            if change_type == Change.deleted:
                continue
            if Path(path_str).resolve() == target:
                return True
        return False


# Singleton instance
file_watcher = FileWatcher()
