"""Watcher: repeats monitoring attempts until stopped."""

import dataclasses
import logging
import threading
import time
from typing import Callable, Iterable, List, Optional, Tuple

from .config import PathLike, WatchSpec, WatcherConfig
from .event_source import EventSource, WatchdogEventSource
from .exceptions import TransientMonitoringError, WatcherAlreadyRunningError
from .models import ChangeEvent, SessionOutcome, WatcherStats
from .session import StopFlag, WatchSession


logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class Watcher:
    """
    Watches directories and notifies listeners once per detected change.

    Every monitoring attempt runs in a fresh WatchSession. An attempt ends
    when a path is created or deleted (so the next session covers the new
    set of paths), when it fails with a transient error (it is retried),
    or when stop() is called.
    """

    def __init__(
        self,
        directories: Iterable[PathLike],
        extension: Optional[str] = None,
        glob: Optional[str] = None,
        config: Optional[WatcherConfig] = None,
        event_source: Optional[EventSource] = None,
    ):
        """
        Initialize the watcher.

        Args:
            directories: Directories to watch, in order
            extension: Only watch non-hidden files with this extension
            glob: Explicit glob pattern, overrides extension
            config: Watcher configuration
            event_source: Event source to subscribe against
                (default: WatchdogEventSource)

        Raises:
            ConfigError: If no directories are given
        """
        self.config = config or WatcherConfig()
        self.spec = WatchSpec.create(directories, extension=extension, glob=glob)
        self._source = event_source or WatchdogEventSource(self.config)

        self._listeners: List[Listener] = []
        self._stop_flag = StopFlag()
        self._stats = WatcherStats()
        self._running = False
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def directories(self) -> Tuple[str, ...]:
        return self.spec.directories

    @property
    def glob(self) -> str:
        return self.spec.glob

    @property
    def path(self) -> str:
        """Watched directories joined with ':'."""
        return self.spec.path

    def on_change(self, callback: Listener) -> Listener:
        """
        Register a listener called once per detected change.

        Listeners take no arguments and are called synchronously in
        registration order. Returns the callback, so this also works as a
        decorator.
        """
        self._listeners.append(callback)
        return callback

    def _handle_change(self, event: ChangeEvent) -> None:
        """Notify every listener of one change."""
        self._stats.changes += 1
        for listener in list(self._listeners):
            listener()

    def _watch_once(self) -> SessionOutcome:
        """Run one monitoring attempt in a new session."""
        self._stats.attempts += 1
        with WatchSession(self.spec, self._source, self.config.poll_interval) as session:
            return session.run(self._handle_change, self._stop_flag)

    def _pause(self, seconds: float) -> None:
        """Sleep before a retry, returning early if stop is requested."""
        deadline = time.monotonic() + seconds
        while not self._stop_flag.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            time.sleep(min(remaining, self.config.poll_interval))

    def run(self) -> None:
        """
        Watch until stop() is called (blocking).

        Transient monitoring errors are logged and the attempt is retried
        with a new session: at once after the first failure, then with an
        increasing delay while failures keep repeating. Any other exception,
        including one raised by a listener, propagates.

        Raises:
            WatcherAlreadyRunningError: If already running
        """
        with self._lock:
            if self._running:
                raise WatcherAlreadyRunningError("Watcher is already running")
            self._running = True

        logger.info(f"Watching '{self.path}' for '{self.glob}'")
        consecutive_failures = 0
        try:
            while not self._stop_flag.is_set():
                try:
                    outcome = self._watch_once()
                except TransientMonitoringError as e:
                    consecutive_failures += 1
                    self._stats.failures += 1
                    logger.warning(f"Monitoring attempt failed, retrying: {e}")
                    self._pause(self.config.retry_delay(consecutive_failures))
                    continue

                consecutive_failures = 0
                if outcome is SessionOutcome.REBUILD:
                    self._stats.rebuilds += 1
                    logger.debug("Paths created or deleted, rebuilding session")
        finally:
            with self._lock:
                self._running = False
            logger.info("Watcher stopped")

    def start_async(self) -> threading.Thread:
        """
        Run the watcher on a background thread.

        Returns:
            The started daemon thread

        Raises:
            WatcherAlreadyRunningError: If already running
        """
        with self._lock:
            if self._running or (self._thread is not None and self._thread.is_alive()):
                raise WatcherAlreadyRunningError("Watcher is already running")
            self._thread = threading.Thread(target=self.run, name="FSWatcher", daemon=True)
        self._thread.start()
        return self._thread

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for a watcher started with start_async() to finish.

        Returns:
            True if the watcher is no longer running
        """
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            return not self._thread.is_alive()
        return not self._running

    def stop(self) -> None:
        """
        Request the watcher to stop.

        The current attempt ends within one poll interval and no new one
        starts. Safe to call more than once, before run(), from another
        thread or from a signal handler.
        """
        self._stop_flag.set()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_stopped(self) -> bool:
        return self._stop_flag.is_set()

    @property
    def stats(self) -> WatcherStats:
        """Snapshot of the attempt and notification counters."""
        return dataclasses.replace(self._stats)
