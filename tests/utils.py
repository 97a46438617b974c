"""Shared test utilities for filecacher tests."""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from pathlib import Path

from filecacher.errors import FileNotFound
from filecacher.watching.base import EventHandler, WatchEvent


class ManualSubscription:
    """Subscription whose events are fired by the test, on the test's thread."""

    def __init__(self, service: ManualWatchService, path: Path, handler: EventHandler) -> None:
        self.path = path
        self.handler = handler
        self.service = service
        self.started = False
        self.release_count = 0

    @property
    def released(self) -> bool:
        return self.release_count > 0

    def start(self) -> None:
        if self.service.fail_start is not None:
            raise self.service.fail_start
        self.started = True

    def release(self) -> None:
        self.release_count += 1

    def fire(self, event: WatchEvent) -> None:
        # Delivered even after release, to simulate late events
        self.handler(event)


class ManualWatchService:
    """Watch service driven entirely by the test."""

    def __init__(self) -> None:
        self.subscriptions: list[ManualSubscription] = []
        self.closed = False
        # Raised from start() when set
        self.fail_start: BaseException | None = None

    def subscribe(self, path: Path, handler: EventHandler) -> ManualSubscription:
        if not os.path.exists(path):
            raise FileNotFound(path)
        subscription = ManualSubscription(self, Path(path), handler)
        self.subscriptions.append(subscription)
        return subscription

    def close(self) -> None:
        self.closed = True

    def for_path(self, path: Path) -> list[ManualSubscription]:
        return [s for s in self.subscriptions if s.path == Path(path)]

    def fire(self, path: Path, event: WatchEvent) -> None:
        """Deliver ``event`` to the newest subscription for ``path``."""
        self.for_path(path)[-1].fire(event)


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def write_atomic(path: Path, data: bytes) -> None:
    """Replace ``path`` with ``data`` in one rename."""
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_bytes(data)
    os.replace(tmp, path)
