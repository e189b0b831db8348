"""Recursive directory watching on top of watchdog.

Each non-excluded directory of a mapping's tree gets its own non-recursive
watch, so excluded subtrees (``node_modules``, build output) never consume
watch descriptors. Events from watchdog's observer thread are handed to the
asyncio event loop through a single shared ``ChangeStream``.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import os
import threading
from typing import TYPE_CHECKING

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from autorsync.exceptions import WatchRegistrationError
from autorsync.filesystem.exclusions import ExclusionMatcher
from autorsync.models import ChangeEvent, ChangeKind

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from watchdog.observers.api import BaseObserver, ObservedWatch

    from autorsync.models import Mapping

logger = logging.getLogger(__name__)

# How often a publisher blocked on a full queue checks whether the stream closed.
_PUBLISH_POLL_SECONDS = 0.2
_OBSERVER_JOIN_TIMEOUT = 5.0

_KIND_BY_EVENT_TYPE: dict[str, ChangeKind] = {
    "created": ChangeKind.CREATED,
    "modified": ChangeKind.MODIFIED,
    "deleted": ChangeKind.DELETED,
    "moved": ChangeKind.MOVED,
    "closed": ChangeKind.CLOSED,
}


def _to_str(path: bytes | str) -> str:
    """Convert a watchdog path to str, handling the bytes case."""
    return os.fsdecode(path)


def _is_within(path: str, root: str) -> bool:
    return path == root or path.startswith(os.path.join(root, ""))


def to_change_event(event: FileSystemEvent) -> ChangeEvent | None:
    """Translate a watchdog event; None for events that never imply a change (opened)."""
    kind = _KIND_BY_EVENT_TYPE.get(event.event_type)
    if kind is None:
        return None
    dest_path = _to_str(event.dest_path) if event.dest_path else None
    return ChangeEvent(
        path=_to_str(event.src_path),
        kind=kind,
        is_directory=event.is_directory,
        dest_path=dest_path,
    )


class ChangeStream:
    """The single channel carrying change events and watcher errors to the router.

    Events go through a bounded queue. A producer thread publishing into a full
    queue blocks until the router catches up or the stream is closed. Errors
    travel on a separate unbounded queue.

    ``publish_*`` are for foreign threads (the watchdog observer) and must not
    be called from the event loop thread; ``emit_*`` are the in-loop variants.
    """

    def __init__(self, maxsize: int = 0, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._events: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize)
        self._errors: asyncio.Queue[Exception] = asyncio.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        """Stop accepting events and release any blocked publisher."""
        self._closed.set()

    def publish_event(self, event: ChangeEvent) -> None:
        """Hand an event to the loop from another thread, blocking while the queue is full."""
        if self.closed or self._loop.is_closed():
            return
        future = asyncio.run_coroutine_threadsafe(self._events.put(event), self._loop)
        while True:
            try:
                future.result(timeout=_PUBLISH_POLL_SECONDS)
                return
            except TimeoutError:
                if self.closed:
                    future.cancel()
                    logger.debug("Dropped %s: change stream closed", event.path)
                    return
            except concurrent.futures.CancelledError:
                return

    def publish_error(self, error: Exception) -> None:
        """Hand a watcher error to the loop from another thread."""
        if self.closed or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._errors.put_nowait, error)

    async def emit_event(self, event: ChangeEvent) -> None:
        await self._events.put(event)

    async def emit_error(self, error: Exception) -> None:
        await self._errors.put(error)

    async def next_event(self) -> ChangeEvent:
        return await self._events.get()

    async def next_error(self) -> Exception:
        return await self._errors.get()


class _MappingEventHandler(FileSystemEventHandler):
    """Forwards watchdog events for one mapping's tree onto the change stream."""

    def __init__(self, watcher: TreeWatcher, mapping: Mapping, matcher: ExclusionMatcher) -> None:
        self.watcher = watcher
        self.mapping = mapping
        self.matcher = matcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        change = to_change_event(event)
        if change is None:
            return
        if change.is_directory:
            try:
                self.watcher.track_directory_change(self, change)
            except Exception as exc:
                self.watcher.stream.publish_error(exc)
        self.watcher.stream.publish_event(change)


class TreeWatcher:
    """Registers every non-excluded directory of each mapping with a watchdog observer.

    Registration happens once per mapping at startup. Directories created or
    moved into a watched tree later are walked and registered the same way,
    and watches of deleted or moved-away directories are dropped; failures
    there go to the error stream instead of being raised.
    """

    def __init__(
        self,
        stream: ChangeStream,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        self.stream = stream
        self._observer = observer_factory()
        self._watches: dict[str, ObservedWatch] = {}
        self._lock = threading.RLock()

    @property
    def watched_paths(self) -> list[str]:
        """Directories currently registered, sorted."""
        with self._lock:
            return sorted(self._watches)

    def start(self) -> None:
        """Start the observer thread. Watches scheduled afterwards are live immediately."""
        self._observer.start()

    def stop(self) -> None:
        """Close the stream, stop the observer thread and wait for it. Blocking."""
        self.stream.close()
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join(timeout=_OBSERVER_JOIN_TIMEOUT)

    def watch_mapping(self, mapping: Mapping) -> int:
        """Register the mapping's whole tree. Returns the number of directories added.

        Raises:
            WatchRegistrationError: If the source root is missing, not a
                directory, cannot be watched, or the tree cannot be walked.
        """
        root = mapping.root
        if not os.path.isdir(root):
            msg = f"source {root} does not exist or is not a directory"
            raise WatchRegistrationError(msg)

        matcher = ExclusionMatcher(root, mapping.exclusions)
        handler = _MappingEventHandler(self, mapping, matcher)

        def _fail(exc: OSError) -> None:
            msg = f"error while traversing {root}: {exc}"
            raise WatchRegistrationError(msg) from exc

        count = 0
        for dirpath in self._walk(root, matcher, onerror=_fail):
            if self._schedule(dirpath, handler):
                count += 1
            elif dirpath == root and root not in self._watches:
                msg = f"failed to watch source root {root}"
                raise WatchRegistrationError(msg)
        logger.info("Watching %d directories under %s", count, root)
        return count

    def track_directory_change(self, handler: _MappingEventHandler, change: ChangeEvent) -> None:
        """Keep the watch set in step with directory creation, deletion and moves."""
        if change.kind is ChangeKind.CREATED:
            self._register_subtree(change.path, handler)
        elif change.kind is ChangeKind.DELETED:
            self._unschedule_subtree(change.path)
        elif change.kind is ChangeKind.MOVED:
            self._unschedule_subtree(change.path)
            if change.dest_path and _is_within(change.dest_path, handler.mapping.root):
                self._register_subtree(change.dest_path, handler)

    @staticmethod
    def _walk(
        top: str, matcher: ExclusionMatcher, onerror: Callable[[OSError], None]
    ) -> Iterator[str]:
        for dirpath, dirnames, _ in os.walk(top, onerror=onerror):
            if matcher.is_excluded(dirpath):
                dirnames[:] = []
                continue
            dirnames[:] = [d for d in dirnames if not matcher.is_excluded(os.path.join(dirpath, d))]
            yield dirpath

    def _register_subtree(self, top: str, handler: _MappingEventHandler) -> None:
        for dirpath in self._walk(top, handler.matcher, onerror=self.stream.publish_error):
            if self._schedule(dirpath, handler):
                logger.debug("Watching new directory %s", dirpath)

    def _schedule(self, path: str, handler: _MappingEventHandler) -> bool:
        with self._lock:
            if path in self._watches:
                return False
            try:
                watch = self._observer.schedule(handler, path, recursive=False)
            except OSError as exc:
                logger.warning("Failed to watch %s: %s", path, exc)
                return False
            self._watches[path] = watch
            return True

    def _unschedule_subtree(self, top: str) -> None:
        prefix = top + os.sep
        with self._lock:
            stale = [p for p in self._watches if p == top or p.startswith(prefix)]
            for path in stale:
                watch = self._watches.pop(path)
                try:
                    self._observer.unschedule(watch)
                except (KeyError, OSError) as exc:
                    logger.debug("Watch for %s already gone: %s", path, exc)
                else:
                    logger.debug("Stopped watching %s", path)
