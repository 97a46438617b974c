"""A single file's contents held in memory and kept fresh by change events.

A CachedFile reads its file once on construction, then subscribes to a
watch service. Write events re-read the file under an exclusive lock; a
remove event closes the entry. Readers share the lock, so any number of
them can look at the snapshot at once, but never while it is being
replaced.

The closed flag lives outside the read/write lock: deciding who performs
the close never waits on readers or on a refresh in flight.
"""

from __future__ import annotations

import contextlib
import io
import os
import threading
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import IO, TYPE_CHECKING, TypeVar

import fasteners

from filecacher.errors import FileNotFound, IsClosed
from filecacher.logging import VERBOSE, get_logger
from filecacher.watching.base import FileSnapshot, WatchEvent

if TYPE_CHECKING:
    from filecacher.watching.base import Subscription, WatchService

log = get_logger("cache")

T = TypeVar("T")


class FileState(Enum):
    """Lifecycle of a cached file. Only ever moves forward."""

    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


def read_file(path: Path) -> bytes:
    """Read the whole file at ``path``.

    Raises:
        FileNotFound: The file does not exist.
        OSError: Any other failure opening or reading it.
    """
    try:
        with open(path, "rb") as f:
            return f.read()
    except FileNotFoundError:
        raise FileNotFound(path) from None


class CachedFile:
    """In-memory copy of one file, refreshed on change.

    Example:
        cached = CachedFile(Path("/srv/templates/index.html"), PollingWatchService())
        html = cached.read(lambda r: r.read().decode())
        cached.close()
    """

    def __init__(self, path: str | os.PathLike[str], watcher: WatchService) -> None:
        """Read the file and start watching it.

        The content is fully loaded before the subscription is started, so
        the first read never sees an empty buffer.

        Raises:
            FileNotFound: ``path`` does not exist.
            OSError: The file could not be read.
        """
        self._path = Path(path)
        self._lock = fasteners.ReaderWriterLock()
        self._state = FileState.OPEN
        self._state_lock = threading.Lock()

        before = FileSnapshot.maybe(self._path)
        self._content = read_file(self._path)

        self._subscription: Subscription = watcher.subscribe(self._path, self._on_event)
        try:
            self._subscription.start()
        except Exception:
            self._subscription.release()
            raise

        # A change that landed while loading may predate the watch baseline
        if FileSnapshot.maybe(self._path) != before:
            self._on_event(WatchEvent.WRITE)
        log.debug("Cached %s (%d bytes)", self._path, len(self._content))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def state(self) -> FileState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is not FileState.OPEN

    @property
    def size(self) -> int:
        """Length of the current snapshot in bytes."""
        with self._lock.read_lock():
            return len(self._content)

    def read(self, consumer: Callable[[IO[bytes]], T]) -> T:
        """Call ``consumer`` with a reader over the current contents.

        The snapshot cannot change while ``consumer`` runs. Whatever the
        consumer returns is returned here, and anything it raises propagates.

        Raises:
            IsClosed: The file has been closed.
        """
        with self._lock.read_lock():
            if self.closed:
                raise IsClosed("cached file")
            return consumer(io.BytesIO(self._content))

    def close(self) -> None:
        """Stop watching the file. Only the first call succeeds.

        Reads already in progress finish against the last snapshot; reads
        started afterwards raise IsClosed.

        Raises:
            IsClosed: Another call already closed this file.
        """
        if not self._begin_close():
            raise IsClosed("cached file")
        try:
            self._subscription.release()
        finally:
            self._state = FileState.CLOSED
        log.debug("Closed %s", self._path)

    def _begin_close(self) -> bool:
        with self._state_lock:
            if self._state is not FileState.OPEN:
                return False
            self._state = FileState.CLOSING
            return True

    def _refresh(self) -> int:
        # New content is read completely before replacing the old, so a
        # failed read leaves the previous snapshot intact.
        with self._lock.write_lock():
            content = read_file(self._path)
            self._content = content
        return len(content)

    def _on_event(self, event: WatchEvent) -> None:
        if event is WatchEvent.WRITE:
            if self.closed:
                log.debug("Ignoring write event for closed %s", self._path)
                return
            try:
                size = self._refresh()
            except FileNotFound:
                log.info("%s vanished before it could be refreshed", self._path)
            except OSError as e:
                log.warning("Error refreshing %s: %s", self._path, e)
            else:
                log.log(VERBOSE, "Refreshed %s (%d bytes)", self._path, size)
        elif event is WatchEvent.REMOVE:
            try:
                self.close()
            except IsClosed:
                log.debug("Remove event for already closed %s", self._path)

    def __enter__(self) -> CachedFile:
        return self

    def __exit__(self, *args: object) -> None:
        with contextlib.suppress(IsClosed):
            self.close()

    def __repr__(self) -> str:
        return f"CachedFile({str(self._path)!r}, state={self._state.value})"
