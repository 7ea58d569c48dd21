"""Change dispatcher: turns filesystem notifications into artifact operations.

Notifications arrive one at a time on the watchdog observer thread.
Classification and routing are synchronous; the resulting generate/cleanup
operations run on a thread pool, so several renders may be in flight at
once. Each dispatched operation is returned as a Future so callers can
observe completion and failure.

By default operations on the same source are not serialized: two quick
edits can finish out of order and the last write to finish wins. With
``sequence_per_path`` enabled a PathSequencer orders them instead.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)

from plantwatch.artifacts import ArtifactGenerator, GenerationResult
from plantwatch.paths import WatchFilter
from plantwatch.utils.logging import get_logger


class ChangeKind(Enum):
    """Classified kind of a source change."""

    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class ChangeEvent:
    """A single classified change to a diagram source."""

    kind: ChangeKind
    path: Path


def _decode(path: bytes | str) -> str:
    if isinstance(path, bytes):
        return path.decode("utf-8", errors="surrogateescape")
    return path


class PathSequencer:
    """Orders operations on the same path.

    Keeps the latest in-flight future per path together with the operation
    it has to wait for. A new operation for a path cancels the previous one
    when it has not started yet and inherits its predecessor; otherwise the
    new operation waits for the previous one. Either way at most one
    operation per path runs at a time and they finish in issue order.
    Superseded operations resolve as cancelled futures.
    """

    def __init__(self, executor: ThreadPoolExecutor) -> None:
        self._executor = executor
        # Reentrant: Future.cancel() runs done callbacks on the calling thread
        self._lock = threading.RLock()
        self._latest: dict[Path, tuple[Future, Future | None]] = {}

    def submit(self, path: Path, fn: Callable[..., Any], *args: Any) -> Future:
        with self._lock:
            predecessor = None
            entry = self._latest.get(path)
            if entry is not None:
                prior, prior_predecessor = entry
                # A cancelled future never ran, so its own predecessor may still be running
                predecessor = prior_predecessor if prior.cancel() else prior
            future = self._executor.submit(self._run_after, predecessor, fn, *args)
            self._latest[path] = (future, predecessor)
        future.add_done_callback(partial(self._release, path))
        return future

    def in_flight(self) -> dict[Path, Future]:
        with self._lock:
            return {path: future for path, (future, _) in self._latest.items()}

    @staticmethod
    def _run_after(predecessor: Future | None, fn: Callable[..., Any], *args: Any) -> Any:
        if predecessor is not None:
            wait([predecessor])
        return fn(*args)

    def _release(self, path: Path, future: Future) -> None:
        with self._lock:
            entry = self._latest.get(path)
            if entry is not None and entry[0] is future:
                del self._latest[path]


class ChangeDispatcher:
    """Filters, classifies and routes filesystem notifications.

    | Notification             | Action                                  |
    |--------------------------|-----------------------------------------|
    | file created, included   | generate(path)                          |
    | file modified, included  | generate(path)                          |
    | file deleted, included   | cleanup(path)                           |
    | file moved               | cleanup(src) and/or generate(dest)      |
    | directory events         | ignored                                 |
    | anything else            | ignored                                 |
    """

    def __init__(
        self,
        generator: ArtifactGenerator,
        watch_filter: WatchFilter,
        workers: int = 4,
        sequence_per_path: bool = False,
        logger: logging.Logger | None = None,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self.generator = generator
        self.watch_filter = watch_filter
        self.logger = logger or get_logger("dispatcher")
        self._executor = executor or ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="plantwatch-render"
        )
        self._sequencer = PathSequencer(self._executor) if sequence_per_path else None
        # Reentrant: a superseded future's callbacks fire inside dispatch()
        self._lock = threading.RLock()
        self._pending: set[Future] = set()
        self._closed = False

    @property
    def sequenced(self) -> bool:
        return self._sequencer is not None

    def classify(self, event: FileSystemEvent) -> list[ChangeEvent]:
        """Translate a watchdog event into zero or more source changes."""
        if event.is_directory:
            return []

        src = Path(_decode(event.src_path))
        if event.event_type == EVENT_TYPE_CREATED:
            changes = [ChangeEvent(ChangeKind.CREATED, src)]
        elif event.event_type == EVENT_TYPE_MODIFIED:
            changes = [ChangeEvent(ChangeKind.MODIFIED, src)]
        elif event.event_type == EVENT_TYPE_DELETED:
            changes = [ChangeEvent(ChangeKind.REMOVED, src)]
        elif event.event_type == EVENT_TYPE_MOVED:
            dest = Path(_decode(event.dest_path))
            changes = [
                ChangeEvent(ChangeKind.REMOVED, src),
                ChangeEvent(ChangeKind.CREATED, dest),
            ]
        else:
            return []

        return [c for c in changes if self.watch_filter.accepts(c.path)]

    def handle(self, event: FileSystemEvent) -> list[Future]:
        """Classify a watchdog event and dispatch every resulting change."""
        changes = self.classify(event)
        if not changes:
            self.logger.debug("Ignoring event %s on %s", event.event_type, event.src_path)
            return []
        futures = []
        for change in changes:
            future = self.dispatch(change)
            if future is not None:
                futures.append(future)
        return futures

    def dispatch(self, change: ChangeEvent) -> Future | None:
        """Submit the operation for a change.

        Returns:
            Future resolving to a GenerationResult, or None once shut down
        """
        if change.kind is ChangeKind.REMOVED:
            operation = self.generator.cleanup
        else:
            operation = self.generator.generate

        with self._lock:
            if self._closed:
                return None
            path = change.path.resolve()
            if self._sequencer is not None:
                future = self._sequencer.submit(path, operation, path)
            else:
                future = self._executor.submit(operation, path)
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return future

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            self.logger.debug("Superseded operation cancelled")
            return
        error = future.exception()
        if error is not None:
            self.logger.error("Unexpected error while processing change: %s", error)

    def pending(self) -> list[Future]:
        """Operations submitted and not yet finished."""
        with self._lock:
            return list(self._pending)

    def join(self, timeout: float | None = None) -> list[GenerationResult]:
        """Wait for in-flight operations and return the completed results.

        Used by one-shot commands and tests; the watch loop itself never
        drains on shutdown.
        """
        done, _ = wait(self.pending(), timeout=timeout)
        return [f.result() for f in done if not f.cancelled() and f.exception() is None]

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting changes. Queued operations are cancelled."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=True)


class SourceEventHandler(FileSystemEventHandler):
    """Watchdog handler forwarding every notification to the dispatcher."""

    def __init__(self, dispatcher: ChangeDispatcher) -> None:
        super().__init__()
        self.dispatcher = dispatcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        self.dispatcher.handle(event)
