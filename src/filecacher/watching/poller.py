"""Polling watch service.

Each subscription runs its own daemon thread that compares stat snapshots
at a fixed interval. Polling is preferred over native notifications as the
default because it behaves the same on every platform and filesystem
(network mounts included).
"""

from __future__ import annotations

import threading
from pathlib import Path

from filecacher.errors import FileNotFound
from filecacher.logging import get_logger
from filecacher.watching.base import EventHandler, FileSnapshot, WatchEvent

log = get_logger("watching")

DEFAULT_POLL_INTERVAL = 1.0


class PollingSubscription:
    """Polls one path and forwards changes to a handler.

    Delivery stops after the first REMOVE; the owner is expected to tear
    itself down when its file disappears.
    """

    def __init__(
        self,
        service: PollingWatchService,
        path: Path,
        handler: EventHandler,
        poll_interval: float,
    ) -> None:
        self.path = path
        self._service = service
        self._handler = handler
        self._poll_interval = poll_interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._start_lock = threading.Lock()
        try:
            self._snapshot: FileSnapshot | None = FileSnapshot.of(path)
        except FileNotFoundError:
            raise FileNotFound(path) from None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def released(self) -> bool:
        return self._stop.is_set()

    def start(self) -> None:
        with self._start_lock:
            if self._thread is not None or self._stop.is_set():
                return
            self._thread = threading.Thread(
                target=self._run,
                name=f"filecacher-poll:{self.path.name}",
                daemon=True,
            )
            self._thread.start()
        log.debug("Polling %s every %.2fs", self.path, self._poll_interval)

    def release(self) -> None:
        if self._stop.is_set():
            return
        self._stop.set()
        self._service._forget(self)
        log.debug("Stopped polling %s", self.path)

    def check(self) -> WatchEvent | None:
        """Compare the file against the last snapshot.

        Returns:
            The change observed since the previous check, or None.
        """
        if self._snapshot is None:
            return None
        try:
            current = FileSnapshot.of(self.path)
        except FileNotFoundError:
            self._snapshot = None
            return WatchEvent.REMOVE
        except OSError as e:
            log.warning("Error checking %s: %s", self.path, e)
            return None

        if current != self._snapshot:
            self._snapshot = current
            return WatchEvent.WRITE
        return None

    def _run(self) -> None:
        while not self._stop.wait(self._poll_interval):
            event = self.check()
            if event is None:
                continue
            if self._stop.is_set():
                break
            try:
                self._handler(event)
            except Exception:
                log.exception("Error in change handler for %s", self.path)
            if event is WatchEvent.REMOVE:
                break


class PollingWatchService:
    """Watch service backed by per-path polling threads."""

    def __init__(self, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self._poll_interval = poll_interval
        self._lock = threading.Lock()
        self._subscriptions: set[PollingSubscription] = set()

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(self, path: Path, handler: EventHandler) -> PollingSubscription:
        subscription = PollingSubscription(self, Path(path), handler, self._poll_interval)
        with self._lock:
            self._subscriptions.add(subscription)
        return subscription

    def close(self) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.release()

    def _forget(self, subscription: PollingSubscription) -> None:
        with self._lock:
            self._subscriptions.discard(subscription)
