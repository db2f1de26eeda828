"""Custom exceptions for the fswatch package."""


class FSWatchError(Exception):
    """Base exception for all fswatch errors."""
    pass


class ConfigError(FSWatchError):
    """Invalid or missing arguments or configuration."""
    pass


class TransientMonitoringError(FSWatchError):
    """A monitoring attempt failed and should be retried with a fresh session."""
    pass


class WatcherAlreadyRunningError(FSWatchError):
    """Watcher is already running."""
    pass
