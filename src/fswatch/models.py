"""Data models for the fswatch package."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
import time


class ChangeKind(Enum):
    """Kinds of change reported by the event source."""
    UPDATED = "updated"
    CREATED = "created"
    DELETED = "deleted"

    @property
    def forces_rebuild(self) -> bool:
        """Whether the set of watchable paths may have changed."""
        return self is not ChangeKind.UPDATED


class SessionOutcome(Enum):
    """How a monitoring attempt ended without error."""
    REBUILD = "rebuild"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ChangeEvent:
    """
    A single change seen by the event source.

    Attributes:
        kind: What happened to the path
        path: Absolute path of the affected file or directory
        is_directory: Whether the path is a directory
        timestamp: Unix timestamp when the event was received
    """
    kind: ChangeKind
    path: Path
    is_directory: bool = False
    timestamp: float = field(default_factory=time.time)


@dataclass
class WatcherStats:
    """
    Counters kept by a watcher across its monitoring attempts.

    Attributes:
        attempts: Monitoring attempts started
        rebuilds: Attempts ended by a created or deleted path
        failures: Attempts ended by a transient error
        changes: Change notifications dispatched
    """
    attempts: int = 0
    rebuilds: int = 0
    failures: int = 0
    changes: int = 0

    def to_dict(self) -> dict:
        """Convert to a dictionary for logging."""
        return asdict(self)
