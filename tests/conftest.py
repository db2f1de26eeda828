"""Shared fixtures for fswatch tests."""

import pytest
from pathlib import Path

from src.fswatch.config import WatcherConfig
from src.fswatch.models import ChangeEvent, ChangeKind


# Script step for a subscription that reports itself dead
DEAD = object()


def make_event(kind: ChangeKind, name: str = "file.txt", root: str = "/tmp/a") -> ChangeEvent:
    return ChangeEvent(kind=kind, path=Path(root) / name)


class FakeSubscription:
    """Subscription stand-in that records whether it was released."""

    def __init__(self, directory, glob, alive=True, fail_on_close=False):
        self.directory = directory
        self.glob = glob
        self.alive = alive
        self.fail_on_close = fail_on_close
        self.closed = False

    def is_alive(self):
        return self.alive and not self.closed

    def close(self):
        self.closed = True
        if self.fail_on_close:
            raise RuntimeError("close failed")


class FakeEventSource:
    """
    Scripted event source: every subscribe() call consumes one step.

    A step is a list of events delivered straight away, an exception to
    raise from subscribe(), or DEAD for a subscription that has stopped.
    Once the script runs out, on_exhausted is called (usually a watcher's
    stop) and subscriptions deliver nothing.
    """

    def __init__(self, steps=None, on_exhausted=None):
        self.steps = list(steps or [])
        self.on_exhausted = on_exhausted
        self.subscriptions = []

    def subscribe(self, directory, glob, callback):
        if self.steps:
            step = self.steps.pop(0)
        else:
            if self.on_exhausted is not None:
                self.on_exhausted()
            step = []

        if isinstance(step, BaseException):
            raise step

        subscription = FakeSubscription(directory, glob, alive=step is not DEAD)
        self.subscriptions.append(subscription)
        if step is not DEAD:
            for event in step:
                callback(event)
        return subscription


@pytest.fixture
def fast_config():
    return WatcherConfig(poll_interval_ms=10, retry_delay_ms=0)
