"""
File-change watcher for the dev server.

A watchdog observer reports changes below the source tree. Each change is
checked against a content fingerprint so rewrites with identical bytes and
duplicate OS events do not trigger rebuilds. Meaningful changes request a
rebuild; after an authoritative successful rebuild the accumulated event is
published to long-poll clients.
"""

from __future__ import annotations

import asyncio
import hashlib
import os
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from esite.build.context import BuildContext
from esite.core.utils import log
from esite.preview.channel import Event, EventChannel
from esite.preview.coordinator import RebuildCoordinator, RebuildResult

STYLE_SUFFIXES = (".css", ".scss", ".sass")


def classify(path: str) -> Event:
    """Stylesheet changes only need a style refresh; anything else reloads."""
    return Event.STYLE if path.lower().endswith(STYLE_SUFFIXES) else Event.RELOAD


def fingerprint(path: Path) -> str:
    """SHA-256 of the file contents."""
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


# =============================================================================
# Watcher
# =============================================================================


class FileChangeWatcher:
    """Turns source tree changes into rebuilds and published events."""

    def __init__(
        self,
        context: BuildContext,
        coordinator: RebuildCoordinator,
        channel: EventChannel,
        on_fatal: Optional[Callable[[BaseException], None]] = None,
    ):
        self.source_path = context.source_path
        self.coordinator = coordinator
        self.channel = channel
        self.on_fatal = on_fatal
        self._fingerprints: dict[str, str] = {}
        self._pending: Optional[Event] = None
        self._observer: Optional[Observer] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> Optional[Event]:
        return self._pending

    async def is_meaningful(self, rel_path: str) -> bool:
        """Check a change against the stored fingerprint, updating it."""
        path = self.source_path / rel_path
        if path.is_dir() or not path.exists():
            self._fingerprints.pop(rel_path, None)
            return True

        try:
            digest = await asyncio.to_thread(fingerprint, path)
        except (FileNotFoundError, IsADirectoryError):
            self._fingerprints.pop(rel_path, None)
            return True

        if self._fingerprints.get(rel_path) == digest:
            return False
        self._fingerprints[rel_path] = digest
        return True

    async def handle_change(self, rel_path: str) -> Optional[RebuildResult]:
        """Process one change notification.

        Returns None when the change was discarded, otherwise the rebuild
        result.
        """
        if not await self.is_meaningful(rel_path):
            return None

        event = classify(rel_path)
        self._pending = Event.combine(self._pending, event)
        log.info(f"Change detected: {rel_path} -> {event.value}")

        result = await self.coordinator.request_rebuild()
        if result.authoritative_success and self._pending is not None:
            self.channel.publish(self._pending)
            log.success(f"Rebuilt, notified browsers ({self._pending.value})")
            self._pending = None
        return result

    # -------------------------------------------------------------------------
    # Observer plumbing
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start observing; must be called from the event loop thread."""
        self._loop = asyncio.get_running_loop()
        self._observer = Observer()
        self._observer.schedule(
            SourceEventHandler(self.source_path, self.notify),
            str(self.source_path),
            recursive=True,
        )
        self._observer.start()
        log.info(f"Watching: {self.source_path}")

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
        for task in self._tasks:
            task.cancel()

    def notify(self, rel_path: str) -> None:
        """Thread-safe entry point for the observer thread."""
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._dispatch, rel_path)

    def _dispatch(self, rel_path: str) -> None:
        task = asyncio.create_task(self.handle_change(rel_path))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        if self.on_fatal is not None:
            self.on_fatal(error)
        else:
            log.error(f"Rebuild failed: {error}")


class SourceEventHandler(FileSystemEventHandler):
    """Forwards source tree events as source-relative paths."""

    def __init__(self, root: Path, callback: Callable[[str], None]):
        super().__init__()
        self.root = root
        self.callback = callback

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory modifications duplicate the file event that caused them
        if event.is_directory:
            return
        self._forward(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        self._forward(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._forward(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Both ends changed: the source no longer exists, the destination is new
        self._forward(event.src_path)
        self._forward(event.dest_path)

    def _forward(self, raw_path) -> None:
        try:
            rel_path = Path(os.fsdecode(raw_path)).relative_to(self.root).as_posix()
        except ValueError:
            return
        if rel_path != ".":
            self.callback(rel_path)
