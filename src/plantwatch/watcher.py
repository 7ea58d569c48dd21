"""Watch process: wires configuration, renderer, dispatcher and observer.

The watcher runs until it receives SIGINT or SIGTERM. On termination the
filesystem subscription is released; renders already running are abandoned.
"""

import logging
import signal
import threading
from collections.abc import Callable
from pathlib import Path
from types import FrameType

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from plantwatch.artifacts import ArtifactCleaner, ArtifactGenerator
from plantwatch.config import PlantWatchConfig
from plantwatch.dispatcher import ChangeDispatcher, ChangeEvent, ChangeKind, SourceEventHandler
from plantwatch.paths import WatchFilter
from plantwatch.renderers.base import DiagramRenderer
from plantwatch.renderers.plantuml import PlantUMLRenderer
from plantwatch.utils.logging import get_logger


def create_observer(use_polling: bool, logger: logging.Logger | None = None) -> BaseObserver:
    """Create a watchdog observer based on configuration."""
    if use_polling:
        from watchdog.observers.polling import PollingObserver

        if logger is not None:
            logger.debug("Using polling observer for filesystem events")
        return PollingObserver()
    return Observer()


def build_renderer(config: PlantWatchConfig, logger: logging.Logger | None = None) -> PlantUMLRenderer:
    """Create the PlantUML renderer described by the configuration.

    A configured style file that does not exist is skipped with a warning.
    """
    style = config.style_path
    if style is not None and not style.is_file():
        if logger is not None:
            logger.warning("Style file not found, rendering without it: %s", style)
        style = None
    return PlantUMLRenderer(
        command=config.render.command,
        output_format=config.render.format,
        style_path=style,
        charset=config.render.charset,
        timeout=config.render.timeout,
    )


class Watcher:
    """Keeps rendered artifacts in sync with diagram sources under a root.

    Usage:
        watcher = Watcher(config)
        watcher.run_forever()
    """

    def __init__(
        self,
        config: PlantWatchConfig,
        renderer: DiagramRenderer | None = None,
        logger: logging.Logger | None = None,
        observer_factory: Callable[[bool], BaseObserver] | None = None,
    ) -> None:
        """Initialize the watcher.

        Args:
            config: Configuration built once at startup
            renderer: Renderer override (defaults to PlantUML from config)
            logger: Status logger (injected for tests)
            observer_factory: Observer override, called with use_polling
        """
        self.config = config
        self.root: Path = config.root
        self.logger = logger or get_logger("watcher")
        self.renderer = renderer or build_renderer(config, self.logger)
        self.watch_filter = WatchFilter(
            self.root,
            extensions=config.watch.extensions,
            exclude=config.watch.exclude,
        )
        cleaner = ArtifactCleaner(
            output_format=self.renderer.output_format,
            source_extensions=config.watch.extensions,
            logger=self.logger,
        )
        self.generator = ArtifactGenerator(self.renderer, cleaner=cleaner, logger=self.logger)
        self.dispatcher = ChangeDispatcher(
            self.generator,
            self.watch_filter,
            workers=config.watch.workers,
            sequence_per_path=config.watch.sequence_per_path,
            logger=self.logger,
        )
        self._observer_factory = observer_factory or (
            lambda polling: create_observer(polling, self.logger)
        )
        self._observer: BaseObserver | None = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self) -> None:
        """Establish the filesystem subscription.

        Raises:
            NotADirectoryError: If the watch root is not a directory
        """
        if not self.root.is_dir():
            raise NotADirectoryError(f"Watch root is not a directory: {self.root}")

        observer = self._observer_factory(self.config.watch.use_polling)
        observer.schedule(SourceEventHandler(self.dispatcher), str(self.root), recursive=True)
        observer.start()
        self._observer = observer
        self._stop_event.clear()

        patterns = ", ".join(f"*{e}" for e in self.config.watch.extensions)
        self.logger.info("Watching %s for %s changes", self.root, patterns)
        if self.dispatcher.sequenced:
            self.logger.info("Per-file sequencing enabled")

        if not self.config.watch.ignore_initial:
            self.replay_existing()

    def replay_existing(self) -> int:
        """Dispatch a creation for every existing source. Returns the count."""
        sources = self.watch_filter.iter_sources()
        for source in sources:
            self.dispatcher.dispatch(ChangeEvent(ChangeKind.CREATED, source))
        if sources:
            self.logger.info("Queued %d existing diagram(s)", len(sources))
        return len(sources)

    def stop(self) -> None:
        """Release the subscription. In-flight renders are not awaited."""
        self._stop_event.set()
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join()
        self.dispatcher.shutdown(wait=False)

    def request_stop(self, signum: int | None = None, frame: FrameType | None = None) -> None:
        """Signal handler: wake run_forever so it can shut down."""
        self._stop_event.set()

    def run_forever(self, poll_interval: float = 1.0) -> None:
        """Start watching and block until SIGINT/SIGTERM or request_stop()."""
        self.start()
        previous_handler = None
        if threading.current_thread() is threading.main_thread():
            previous_handler = signal.signal(signal.SIGTERM, self.request_stop)
        try:
            while not self._stop_event.wait(poll_interval):
                if not self.running:
                    self.logger.error("Filesystem observer stopped unexpectedly")
                    break
        except KeyboardInterrupt:
            pass
        finally:
            self.logger.info("Stopping watcher")
            self.stop()
            if previous_handler is not None:
                signal.signal(signal.SIGTERM, previous_handler)

    def __enter__(self) -> "Watcher":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
