"""A single monitoring attempt: subscribe, stream events, release."""

import logging
import queue
from pathlib import Path
from typing import Callable, List, Optional

from .config import WatchSpec
from .event_source import EventSource, Subscription
from .exceptions import TransientMonitoringError
from .models import ChangeEvent, SessionOutcome


logger = logging.getLogger(__name__)


class StopFlag:
    """
    Set-once flag requesting that watching ends.

    Setting it is a single attribute store with no locks or allocation,
    so it can be done from a signal handler.
    """

    def __init__(self):
        self._set = False

    def set(self) -> None:
        self._set = True

    def is_set(self) -> bool:
        return self._set

    def __bool__(self) -> bool:
        return self._set


class WatchSession:
    """
    One monitoring attempt over every directory of a WatchSpec.

    Subscriptions are created when the session opens and released when it
    closes, however the attempt ends. Events delivered by the event
    source threads are queued and consumed by run() on the caller's
    thread. A session is never reused; the watcher builds a new one for
    each attempt so that paths created since the last attempt are covered.
    """

    def __init__(
        self,
        spec: WatchSpec,
        source: EventSource,
        poll_interval: float = 0.1,
    ):
        """
        Initialize the session.

        Args:
            spec: Directories and glob to subscribe
            source: Event source to subscribe against
            poll_interval: Seconds between stop flag and health checks
                while no event arrives
        """
        self.spec = spec
        self._source = source
        self._poll_interval = poll_interval
        self._queue: "queue.Queue[ChangeEvent]" = queue.Queue()
        self._subscriptions: List[Subscription] = []
        self._opened = False
        self._closed = False

    def open(self) -> None:
        """
        Subscribe every directory of the WatchSpec, in order.

        Raises:
            TransientMonitoringError: If a subscription cannot be created;
                subscriptions already made are released first
        """
        if self._opened:
            return
        self._opened = True

        for directory in self.spec.directories:
            try:
                subscription = self._source.subscribe(
                    Path(directory), self.spec.glob, self._queue.put
                )
            except Exception as e:
                self.close()
                if isinstance(e, OSError):
                    raise TransientMonitoringError(f"Cannot watch {directory}: {e}") from e
                raise
            self._subscriptions.append(subscription)

    def close(self) -> None:
        """Release all subscriptions. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        while self._subscriptions:
            subscription = self._subscriptions.pop()
            try:
                subscription.close()
            except Exception as e:
                logger.warning(f"Error releasing subscription: {e}")

    def _check_alive(self) -> None:
        """Raise if any subscription stopped delivering events."""
        for directory, subscription in zip(self.spec.directories, self._subscriptions):
            if not subscription.is_alive():
                raise TransientMonitoringError(f"Subscription for {directory} stopped unexpectedly")

    def _next_event(self) -> Optional[ChangeEvent]:
        """Wait up to one poll interval for the next queued event."""
        try:
            return self._queue.get(timeout=self._poll_interval)
        except queue.Empty:
            return None

    def run(self, dispatch: Callable[[ChangeEvent], None], stop_flag: StopFlag) -> SessionOutcome:
        """
        Stream events to dispatch until a rebuild is needed or stop is requested.

        Each event is dispatched before the next one is taken. A created or
        deleted path ends the attempt right after its dispatch; events still
        queued in this session are discarded with it.

        Args:
            dispatch: Called once per event, on the calling thread
            stop_flag: Checked before every event and on every poll

        Returns:
            SessionOutcome.REBUILD or SessionOutcome.STOPPED

        Raises:
            TransientMonitoringError: If a subscription dies mid-attempt
        """
        self.open()

        while not stop_flag.is_set():
            event = self._next_event()
            if event is None:
                self._check_alive()
                continue

            logger.debug(f"{event.kind.value}: {event.path}")
            dispatch(event)

            if event.kind.forces_rebuild:
                return SessionOutcome.REBUILD

        return SessionOutcome.STOPPED

    @property
    def pending(self) -> int:
        """Number of events queued but not yet dispatched."""
        return self._queue.qsize()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
