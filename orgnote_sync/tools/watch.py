"""
Filesystem watcher turning file modifications into persist events of
documents in sync mode.
"""
from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future
from pathlib import Path

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from ..core import Document, Orchestrator

__all__ = [
    "DocumentWatcher",
    "watch",
]

logger = logging.getLogger("orgnote-sync")


class DocumentWatcher(FileSystemEventHandler):
    """
    Enables sync mode on syncable files in a folder and persists the
    corresponding document whenever a file is modified.

    Watchdog invokes handlers from its observer thread; persist events are
    handed to the event loop.
    """

    root: Path
    documents: dict[Path, Document]

    _orchestrator: Orchestrator
    _loop: asyncio.AbstractEventLoop

    def __init__(
        self,
        root: Path,
        orchestrator: Orchestrator,
        loop: asyncio.AbstractEventLoop,
    ):
        self.root = root.resolve()
        self.documents = {}
        self._orchestrator = orchestrator
        self._loop = loop

        for suffix in orchestrator.syncable_suffixes:
            for path in sorted(self.root.rglob(f"*{suffix}")):
                if path.is_file():
                    self.track(path)

    def track(self, path: Path) -> Document:
        path = path.resolve()

        doc = self.documents.get(path)
        if doc is None:
            doc = self._orchestrator.open_document(path)
            self.documents[path] = doc
            self._orchestrator.sync_mode.enable(doc)

        return doc

    def untrack(self, path: Path):
        doc = self.documents.pop(path.resolve(), None)
        if doc is not None:
            doc.close()

    def on_created(self, event: FileSystemEvent):
        if not isinstance(event, FileCreatedEvent):
            return

        path = Path(str(event.src_path))
        if self._orchestrator.is_syncable(path):
            logger.info(f"Watching new file: '{path}'")
            self._loop.call_soon_threadsafe(self.track, path)

    def on_deleted(self, event: FileSystemEvent):
        if isinstance(event, FileDeletedEvent):
            self._loop.call_soon_threadsafe(
                self.untrack, Path(str(event.src_path))
            )

    def on_modified(self, event: FileSystemEvent):
        if not isinstance(event, FileModifiedEvent):
            return

        doc = self.documents.get(Path(str(event.src_path)).resolve())
        if doc is None:
            return

        future = asyncio.run_coroutine_threadsafe(doc.persist(), self._loop)
        future.add_done_callback(self._log_failure)

    def _log_failure(self, future: Future):
        if not future.cancelled() and future.exception() is not None:
            logger.error(f"Failed to publish: {future.exception()}")


async def watch(root: Path, orchestrator: Orchestrator):
    """
    Watch folder until cancelled.
    """
    watcher = DocumentWatcher(root, orchestrator, asyncio.get_running_loop())

    observer = Observer()
    observer.schedule(watcher, str(watcher.root), recursive=True)
    observer.start()

    logger.info(
        f"Watching {len(watcher.documents)} file(s) in '{watcher.root}'"
    )

    try:
        # runs until cancelled, e.g. by keyboard interrupt
        await asyncio.Event().wait()
    finally:
        observer.stop()
        observer.join()

        for path in list(watcher.documents):
            watcher.untrack(path)
