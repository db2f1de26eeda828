"""Configuration for the fswatch package."""

import logging
import os
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Tuple, Union

from .exceptions import ConfigError


DEFAULT_GLOB = "**/*"
OBSERVER_KINDS = ("auto", "polling")

PathLike = Union[str, "os.PathLike[str]"]


def resolve_glob(extension: Optional[str] = None, glob: Optional[str] = None) -> str:
    """
    Pick the glob pattern for a watch.

    An explicit glob wins over an extension filter, which wins over the
    default of every file at any depth.

    Args:
        extension: File extension without the leading dot (e.g. "txt")
        glob: Explicit glob pattern

    Returns:
        The glob pattern to subscribe with
    """
    if glob:
        return glob
    if extension:
        return f"**/[^.]*.{extension}"
    return DEFAULT_GLOB


@dataclass(frozen=True)
class WatchSpec:
    """
    The directories to watch and the glob their files must match.

    Attributes:
        directories: Directories to watch, in the order given
        glob: Pattern matched against paths relative to each directory
    """
    directories: Tuple[str, ...]
    glob: str = DEFAULT_GLOB

    def __post_init__(self):
        directories = tuple(os.fspath(d) for d in self.directories)
        if not directories:
            raise ConfigError("Need at least one directory to watch")
        object.__setattr__(self, "directories", directories)
        if not self.glob:
            object.__setattr__(self, "glob", DEFAULT_GLOB)

    @classmethod
    def create(
        cls,
        directories: Iterable[PathLike],
        extension: Optional[str] = None,
        glob: Optional[str] = None,
    ) -> "WatchSpec":
        """Build a spec, resolving the glob from an extension or explicit pattern."""
        if isinstance(directories, (str, os.PathLike)):
            directories = [directories]
        return cls(
            directories=tuple(directories),
            glob=resolve_glob(extension=extension, glob=glob),
        )

    @property
    def path(self) -> str:
        """Directories joined with ':' in input order."""
        return ":".join(self.directories)


@dataclass
class WatcherConfig:
    """
    Tunables for the watcher loop and its event source.

    Attributes:
        poll_interval_ms: How often an idle session re-checks the stop flag
            and the health of its subscriptions
        retry_delay_ms: Base backoff once failures repeat back to back
        max_retry_delay_ms: Upper bound for the backoff
        observer: "auto" for the platform's native backend, "polling" to
            scan the directories periodically
        polling_timeout_ms: Scan interval of the polling observer
        join_timeout_s: How long to wait for an observer thread to finish
        log_level: Logging level used by the command line tool
    """
    poll_interval_ms: int = 100
    retry_delay_ms: int = 100
    max_retry_delay_ms: int = 5000
    observer: str = "auto"
    polling_timeout_ms: int = 1000
    join_timeout_s: float = 5.0
    log_level: str = "WARNING"

    ENV_PREFIX = "FSWATCH_"

    def __post_init__(self):
        for name in ("poll_interval_ms", "polling_timeout_ms"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        for name in ("retry_delay_ms", "max_retry_delay_ms", "join_timeout_s"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")
        if self.observer not in OBSERVER_KINDS:
            raise ConfigError(
                f"observer must be one of {', '.join(OBSERVER_KINDS)}, got '{self.observer}'"
            )
        self.log_level = self.log_level.upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigError(f"Unknown log level: {self.log_level}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "WatcherConfig":
        """
        Build a config from FSWATCH_* environment variables.

        Variables that are not set keep their defaults.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            The resulting configuration

        Raises:
            ConfigError: If a variable holds an invalid value
        """
        if environ is None:
            environ = os.environ

        kwargs = {}
        converters = {
            "poll_interval_ms": int,
            "retry_delay_ms": int,
            "max_retry_delay_ms": int,
            "observer": str,
            "polling_timeout_ms": int,
            "join_timeout_s": float,
            "log_level": str,
        }
        for name, convert in converters.items():
            key = cls.ENV_PREFIX + name.upper()
            raw = environ.get(key)
            if raw is None or raw == "":
                continue
            try:
                kwargs[name] = convert(raw.strip())
            except ValueError:
                raise ConfigError(f"Invalid value for {key}: {raw!r}")

        return cls(**kwargs)

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds."""
        return self.poll_interval_ms / 1000.0

    def retry_delay(self, consecutive_failures: int) -> float:
        """
        Seconds to wait before the next attempt.

        The first failure is retried immediately; after that the delay
        doubles per failure up to max_retry_delay_ms.

        Args:
            consecutive_failures: Failed attempts since the last good one

        Returns:
            Delay in seconds
        """
        if consecutive_failures <= 1 or self.retry_delay_ms == 0:
            return 0.0
        delay_ms = self.retry_delay_ms * 2 ** (consecutive_failures - 2)
        return min(delay_ms, self.max_retry_delay_ms) / 1000.0
