"""Filesystem event source backed by the watchdog library."""

import logging
from pathlib import Path
from typing import Callable, Optional, Protocol

from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from .config import WatcherConfig
from .models import ChangeEvent, ChangeKind
from .patterns import GlobMatcher


logger = logging.getLogger(__name__)

EventCallback = Callable[[ChangeEvent], None]


class Subscription(Protocol):
    """A live (directory, glob) subscription owning OS watch handles."""

    def is_alive(self) -> bool:
        """Whether the subscription is still delivering events."""
        ...

    def close(self) -> None:
        """Release the underlying watch handles."""
        ...


class EventSource(Protocol):
    """Protocol for filesystem event source implementations."""

    def subscribe(self, directory: Path, glob: str, callback: EventCallback) -> Subscription:
        """Start delivering events for paths under directory matching glob."""
        ...


class GlobEventHandler(FileSystemEventHandler):
    """Handler that converts watchdog events to ChangeEvent for matching paths."""

    def __init__(self, root: Path, matcher: GlobMatcher, callback: EventCallback):
        super().__init__()
        self.root = root
        self.matcher = matcher
        self.callback = callback

    def _matches(self, path: Path) -> bool:
        """Check the path, relative to the root, against the glob."""
        try:
            relative = path.relative_to(self.root)
        except ValueError:
            return False
        if relative == Path("."):
            return False
        return self.matcher.matches(relative.as_posix())

    def _emit(self, kind: ChangeKind, src_path, is_directory: bool) -> None:
        """Emit a ChangeEvent to the callback if the path matches."""
        path = Path(src_path)
        if not self._matches(path):
            return
        self.callback(ChangeEvent(kind=kind, path=path, is_directory=is_directory))

    def on_created(self, event: FileSystemEvent) -> None:
        self._emit(ChangeKind.CREATED, event.src_path, event.is_directory)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._emit(ChangeKind.DELETED, event.src_path, event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        # A directory is reported modified whenever one of its entries changes
        if event.is_directory:
            return
        self._emit(ChangeKind.UPDATED, event.src_path, False)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._emit(ChangeKind.DELETED, event.src_path, event.is_directory)
        self._emit(ChangeKind.CREATED, event.dest_path, event.is_directory)


class ObserverSubscription:
    """Subscription holding one started watchdog observer."""

    def __init__(self, root: Path, observer, join_timeout: float = 5.0):
        self.root = root
        self._observer = observer
        self._join_timeout = join_timeout
        self._closed = False

    def is_alive(self) -> bool:
        """
        Check that the observer and all of its emitters are still running.

        Returns:
            False once closed or once any watchdog thread has died
        """
        if self._closed or not self._observer.is_alive():
            return False
        return all(emitter.is_alive() for emitter in self._observer.emitters)

    def close(self) -> None:
        """Stop the observer and wait for its threads. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._observer.stop()
        self._observer.join(timeout=self._join_timeout)
        if self._observer.is_alive():
            logger.warning(f"Observer for {self.root} did not stop within {self._join_timeout}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class WatchdogEventSource:
    """
    Event source using one watchdog observer per subscription.

    Each subscription is scheduled recursively on the resolved directory;
    the glob filter is applied by GlobEventHandler.
    """

    def __init__(self, config: Optional[WatcherConfig] = None):
        """
        Initialize the event source.

        Args:
            config: Watcher configuration (observer kind and timeouts)
        """
        self.config = config or WatcherConfig()

    def _create_observer(self):
        """Create an observer of the configured kind."""
        if self.config.observer == "polling":
            return PollingObserver(timeout=self.config.polling_timeout_ms / 1000.0)
        return Observer()

    def subscribe(self, directory: Path, glob: str, callback: EventCallback) -> ObserverSubscription:
        """
        Start watching a directory.

        Args:
            directory: Directory to watch recursively
            glob: Pattern for paths relative to the directory
            callback: Called from the observer thread for every matching event

        Returns:
            The live subscription

        Raises:
            OSError: If the directory cannot be watched
        """
        root = Path(directory).resolve()
        handler = GlobEventHandler(root, GlobMatcher(glob), callback)

        observer = self._create_observer()
        observer.schedule(handler, str(root), recursive=True)
        try:
            observer.start()
        except Exception:
            # Release emitters that may have been started before the failure
            observer.stop()
            raise

        logger.debug(f"Subscribed to {root} for '{glob}'")
        return ObserverSubscription(root, observer, self.config.join_timeout_s)
