"""
fswatch

Watches directories for files matching a glob and notifies listeners once
for every change.

Features:
- Glob or extension filters, recursive by default
- File change events: CREATED, UPDATED, DELETED
- Session rebuild on created/deleted paths so new files are picked up
- Retry with a fresh session on transient event source errors
- Signal-safe stop
"""

from .models import (
    ChangeKind,
    ChangeEvent,
    SessionOutcome,
    WatcherStats,
)

from .config import WatchSpec, WatcherConfig, resolve_glob, DEFAULT_GLOB

from .exceptions import (
    FSWatchError,
    ConfigError,
    TransientMonitoringError,
    WatcherAlreadyRunningError,
)

from .patterns import GlobMatcher
from .event_source import (
    EventSource,
    Subscription,
    GlobEventHandler,
    ObserverSubscription,
    WatchdogEventSource,
)
from .session import StopFlag, WatchSession
from .watcher import Watcher


__all__ = [
    # Models
    "ChangeKind",
    "ChangeEvent",
    "SessionOutcome",
    "WatcherStats",
    # Config
    "WatchSpec",
    "WatcherConfig",
    "resolve_glob",
    "DEFAULT_GLOB",
    # Exceptions
    "FSWatchError",
    "ConfigError",
    "TransientMonitoringError",
    "WatcherAlreadyRunningError",
    # Components
    "GlobMatcher",
    "EventSource",
    "Subscription",
    "GlobEventHandler",
    "ObserverSubscription",
    "WatchdogEventSource",
    "StopFlag",
    "WatchSession",
    # Main
    "Watcher",
]

__version__ = "0.1.0"
