"""
Filesystem watcher that keeps the area index in step with external edits.

watchdog delivers events on its observer thread; they are handed to the event
loop with ``call_soon_threadsafe`` and queued. A single background task waits
for the first event, keeps draining the queue until ``debounce_seconds`` pass
with no new event, then runs exactly one full rebuild. Events that arrive
while a rebuild runs are queued and produce one further rebuild afterwards.
"""

import asyncio
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..persistence.document_store import DOCUMENT_SUFFIX, TEMP_PREFIX
from ..structured_logging.enhanced_logging_config import get_logger
from .area_index import AreaIndex

logger = get_logger(__name__)

WATCHED_EVENT_TYPES = frozenset({"created", "modified", "deleted", "moved"})
WATCHER_TASK_NAME = "area_change_watcher"


def is_area_document_path(path: str) -> bool:
    """True for committed document files; temporary write files are excluded."""
    name = Path(path).name
    return name.endswith(DOCUMENT_SUFFIX) and not name.startswith(TEMP_PREFIX)


class _AreaEventHandler(FileSystemEventHandler):
    """Forwards relevant watchdog events to the watcher from the observer thread."""

    def __init__(self, watcher: "AreaChangeWatcher"):
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in WATCHED_EVENT_TYPES:
            return
        path = event.src_path
        if event.event_type == "moved":
            # An atomic write shows up as a move of the temp file onto the document
            dest_path = getattr(event, "dest_path", "")
            if dest_path and is_area_document_path(str(dest_path)):
                path = dest_path
        self._watcher.submit_threadsafe(str(path), event.event_type)


class AreaChangeWatcher:
    """
    Debounced area index rebuilds on filesystem change.

    Args:
        area_index: Index to rebuild
        watch_path: Directory holding area-info documents
        task_registry: Registry that owns the background task
        debounce_seconds: Quiet period after the last event before rebuilding
        observe: Start a watchdog observer; when False only notify() feeds events
    """

    def __init__(
        self,
        area_index: AreaIndex,
        watch_path: Path,
        task_registry: Any,
        debounce_seconds: float = 1.0,
        observe: bool = True,
    ):
        self._area_index = area_index
        self._watch_path = Path(watch_path)
        self._task_registry = task_registry
        self._debounce_seconds = debounce_seconds
        self._observe = observe

        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[tuple[str, str]] | None = None
        self._observer: Any = None
        self._task: asyncio.Task[Any] | None = None
        self._inflight: asyncio.Future[Any] | None = None
        self.rebuild_count = 0
        self.failure_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the observer (if enabled) and the debounce task."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()

        if self._observe:
            self._watch_path.mkdir(parents=True, exist_ok=True)
            observer = Observer()
            observer.schedule(_AreaEventHandler(self), str(self._watch_path), recursive=True)
            observer.start()
            self._observer = observer

        self._task = self._task_registry.register_task(self._run(), WATCHER_TASK_NAME, "watcher")
        logger.info(
            "Area change watcher started",
            watch_path=str(self._watch_path),
            debounce_seconds=self._debounce_seconds,
            observing=self._observe,
        )

    async def stop(self) -> None:
        """Stop observing, cancel the debounce task and wait for any in-flight rebuild."""
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            await asyncio.to_thread(observer.join, 5.0)

        if self._task is not None:
            await self._task_registry.cancel_task(WATCHER_TASK_NAME)
            self._task = None

        inflight = self._inflight
        if inflight is not None and not inflight.done():
            logger.info("Waiting for in-flight area index rebuild before stopping")
            await asyncio.wait([inflight])
        logger.info("Area change watcher stopped", rebuild_count=self.rebuild_count)

    def notify(self, path: str, event_type: str) -> None:
        """
        Record a change event. Must be called on the event loop thread.

        Paths that are not committed area documents are ignored.
        """
        if self._queue is None or not is_area_document_path(path):
            return
        logger.debug("Area change detected", path=path, event_type=event_type)
        self._queue.put_nowait((path, event_type))

    def submit_threadsafe(self, path: str, event_type: str) -> None:
        """Hand an event from a foreign thread to the event loop."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self.notify, path, event_type)
        except RuntimeError:
            logger.debug("Event loop closed, dropping change event", path=path, event_type=event_type)

    async def _run(self) -> None:
        assert self._queue is not None
        while True:
            await self._queue.get()
            coalesced = 1
            while True:
                try:
                    await asyncio.wait_for(self._queue.get(), timeout=self._debounce_seconds)
                except TimeoutError:
                    break
                coalesced += 1

            logger.info("Rebuilding area index after changes", coalesced_events=coalesced)
            # Cancelling the watcher must not interrupt a rebuild
            self._inflight = asyncio.create_task(self._rebuild_once())
            await asyncio.shield(self._inflight)

    async def _rebuild_once(self) -> None:
        try:
            snapshot = await self._area_index.rebuild_and_save()
        except Exception as e:  # pylint: disable=broad-exception-caught
            self.failure_count += 1
            logger.error(
                "Area index rebuild failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return
        self.rebuild_count += 1
        logger.info("Area index rebuilt", entries=len(snapshot), rebuild_count=self.rebuild_count)
