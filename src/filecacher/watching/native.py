"""Watch service backed by OS change notifications (via watchdog).

watchdog observes directories, so the first subscription in a directory
schedules that directory on a shared Observer and a single dispatcher
routes events to the subscriptions for the exact file path. Directories
are reference counted and unscheduled when their last subscription is
released.

Handlers run on the observer thread while it holds the observer's own
lock, so ``_lock`` here is never held while calling into the observer,
and the observer thread never blocks on ``_schedule_lock``.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

from filecacher.errors import FileNotFound
from filecacher.logging import get_logger
from filecacher.watching.base import EventHandler, WatchEvent

log = get_logger("watching")


def _event_path(raw: str | bytes) -> Path:
    return Path(os.path.abspath(os.fsdecode(raw)))


class _Dispatcher(FileSystemEventHandler):
    """Maps watchdog file events to WatchEvents for subscribed paths."""

    def __init__(self, service: NativeWatchService) -> None:
        super().__init__()
        self._service = service

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._service._dispatch(event.src_path, WatchEvent.WRITE)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._service._dispatch(event.src_path, WatchEvent.WRITE)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._service._dispatch(event.src_path, WatchEvent.REMOVE)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._service._dispatch(event.src_path, WatchEvent.REMOVE)
        dest = getattr(event, "dest_path", None)
        if dest:
            self._service._dispatch(dest, WatchEvent.WRITE)


class NativeSubscription:
    """A file registered with a NativeWatchService."""

    def __init__(self, service: NativeWatchService, path: Path, handler: EventHandler) -> None:
        self.path = path
        self._service = service
        self._handler = handler
        self._state_lock = threading.Lock()
        self._started = False
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def start(self) -> None:
        with self._state_lock:
            if self._started or self._released:
                return
            self._started = True
        self._service._activate(self)
        log.debug("Watching %s", self.path)

    def release(self) -> None:
        with self._state_lock:
            if self._released:
                return
            self._released = True
        self._service._forget(self)
        log.debug("Stopped watching %s", self.path)

    def _deliver(self, event: WatchEvent) -> None:
        if self._released:
            return
        try:
            self._handler(event)
        except Exception:
            log.exception("Error in change handler for %s", self.path)


class NativeWatchService:
    """Watch service using inotify/FSEvents/ReadDirectoryChangesW through watchdog."""

    def __init__(self) -> None:
        self._observer = Observer()
        self._dispatcher = _Dispatcher(self)
        # Guards _targets, _subscriptions, _counts and _idle; taken by the observer thread
        self._lock = threading.Lock()
        # Guards _watches and observer start/stop; the observer thread only try-acquires it
        self._schedule_lock = threading.Lock()
        self._targets: dict[Path, set[NativeSubscription]] = {}
        self._subscriptions: set[NativeSubscription] = set()
        self._counts: dict[Path, int] = {}
        self._idle: set[Path] = set()
        self._watches: dict[Path, ObservedWatch] = {}
        self._started = False
        self._closed = False

    @property
    def scheduled_directories(self) -> int:
        """Number of directories currently scheduled on the observer."""
        with self._schedule_lock:
            return len(self._watches)

    def subscribe(self, path: Path, handler: EventHandler) -> NativeSubscription:
        path = Path(os.path.abspath(path))
        if not path.exists():
            raise FileNotFound(path)
        subscription = NativeSubscription(self, path, handler)
        with self._lock:
            self._subscriptions.add(subscription)
        return subscription

    def close(self) -> None:
        with self._schedule_lock:
            if self._closed:
                return
            self._closed = True
            started = self._started
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.release()
        if started:
            self._observer.stop()
            self._observer.join()
        log.debug("Native watch service stopped")

    def _activate(self, subscription: NativeSubscription) -> None:
        directory = subscription.path.parent
        with self._lock:
            self._targets.setdefault(subscription.path, set()).add(subscription)
            self._counts[directory] = self._counts.get(directory, 0) + 1
        with self._schedule_lock:
            if self._closed:
                return
            if directory not in self._watches:
                self._watches[directory] = self._observer.schedule(
                    self._dispatcher, str(directory), recursive=False
                )
                log.debug("Scheduled %s", directory)
            if not self._started:
                self._observer.start()
                self._started = True
                log.debug("Native watch service started")
        # A release may have raced the schedule above
        self._drain()

    def _forget(self, subscription: NativeSubscription) -> None:
        directory = subscription.path.parent
        became_idle = False
        with self._lock:
            self._subscriptions.discard(subscription)
            targets = self._targets.get(subscription.path)
            if targets is None or subscription not in targets:
                return
            targets.discard(subscription)
            if not targets:
                del self._targets[subscription.path]
            remaining = self._counts.get(directory, 1) - 1
            if remaining > 0:
                self._counts[directory] = remaining
            else:
                self._counts.pop(directory, None)
                self._idle.add(directory)
                became_idle = True
        if became_idle:
            self._drain()

    def _drain(self) -> None:
        """Unschedule directories left without subscriptions.

        May run on the observer thread, so the schedule lock is only
        try-acquired; whoever holds it drains again after releasing.
        """
        while True:
            if not self._schedule_lock.acquire(blocking=False):
                return
            try:
                self._unschedule_idle()
            finally:
                self._schedule_lock.release()
            with self._lock:
                if not self._idle:
                    return

    def _unschedule_idle(self) -> None:
        # Caller holds _schedule_lock
        with self._lock:
            idle = [d for d in self._idle if d not in self._counts]
            self._idle.clear()
        if self._closed:
            return
        for directory in idle:
            watch = self._watches.pop(directory, None)
            if watch is not None:
                self._observer.unschedule(watch)
                log.debug("Unscheduled %s", directory)

    def _dispatch(self, raw: str | bytes, event: WatchEvent) -> None:
        path = _event_path(raw)
        with self._lock:
            targets = list(self._targets.get(path, ()))
        for subscription in targets:
            subscription._deliver(event)
