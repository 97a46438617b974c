"""Keyed collection of cached files under one root directory.

Lookups share the registry lock; create, unmount and close take it
exclusively. Entries that closed themselves (their file was removed) stay
in the mapping but count as absent until a create or unmount replaces or
drops them.

get_or_create is a get followed by a create, not one atomic step. Two
callers racing on the same missing key can both miss; one create wins and
the loser's create raises FileExists, after which it falls back to a
single get and returns the winner's entry.
"""

from __future__ import annotations

import contextlib
import os
from collections.abc import Callable
from pathlib import Path
from typing import IO, TYPE_CHECKING, TypeVar

import fasteners

from filecacher.cached_file import CachedFile
from filecacher.config import load_config
from filecacher.errors import FileExists, FileNotFound, IsClosed
from filecacher.logging import get_logger
from filecacher.watching import create_watch_service

if TYPE_CHECKING:
    from filecacher.config.schema import Config
    from filecacher.watching.base import WatchService

log = get_logger("registry")

T = TypeVar("T")


class FileCacher:
    """Manages cached files by key, each key naming a file under ``root``.

    Example:
        with open_cacher("/srv/templates") as cacher:
            page = cacher.read("index.html", lambda r: r.read())
    """

    def __init__(
        self,
        root: str | os.PathLike[str],
        *,
        watcher: WatchService | None = None,
        config: Config | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            root: Directory keys are resolved against.
            watcher: Watch service shared by every entry. When omitted, one
                is built from ``config`` and closed along with the registry.
            config: Settings used to build the watch service. Loaded from
                the config files for ``root`` when omitted.
        """
        self._root = Path(root)
        self._lock = fasteners.ReaderWriterLock()
        self._files: dict[str, CachedFile] = {}
        self._closed = False

        if watcher is None:
            config = config or load_config(root=self._root)
            watcher = create_watch_service(config.watch)
            self._owns_watcher = True
        else:
            self._owns_watcher = False
        self._watcher = watcher

    @property
    def root(self) -> Path:
        return self._root

    @property
    def closed(self) -> bool:
        return self._closed

    def resolve(self, key: str) -> Path:
        """Filesystem path for ``key``."""
        return self._root / key

    def _live(self, key: str) -> CachedFile:
        # Caller holds the registry lock
        cached = self._files.get(key)
        if cached is None or cached.closed:
            raise FileNotFound(key)
        return cached

    def create(self, key: str) -> CachedFile:
        """Start caching the file for ``key``.

        Raises:
            IsClosed: The registry is closed.
            FileExists: A live entry for ``key`` already exists.
            FileNotFound: The file does not exist.
            OSError: The file could not be read.
        """
        with self._lock.write_lock():
            if self._closed:
                raise IsClosed("file cacher")
            existing = self._files.get(key)
            if existing is not None and not existing.closed:
                raise FileExists(key)

            cached = CachedFile(self.resolve(key), self._watcher)
            self._files[key] = cached
        log.debug("Created entry %r -> %s", key, cached.path)
        return cached

    def get(self, key: str) -> CachedFile:
        """Return the live entry for ``key``.

        Raises:
            IsClosed: The registry is closed.
            FileNotFound: No live entry exists for ``key``.
        """
        with self._lock.read_lock():
            if self._closed:
                raise IsClosed("file cacher")
            return self._live(key)

    def get_or_create(self, key: str) -> CachedFile:
        """Return the entry for ``key``, creating it if needed."""
        try:
            return self.get(key)
        except FileNotFound:
            pass

        try:
            return self.create(key)
        except FileExists:
            log.debug("Lost create race for %r, using existing entry", key)
            return self.get(key)

    def read(self, key: str, consumer: Callable[[IO[bytes]], T]) -> T:
        """Run ``consumer`` against the cached contents of ``key``.

        The entry is created on first use. Errors from the lookup, the
        read or the consumer itself propagate.
        """
        return self.get_or_create(key).read(consumer)

    def read_bytes(self, key: str) -> bytes:
        """Cached contents of ``key`` as bytes."""
        return self.read(key, lambda reader: reader.read())

    def keys(self) -> list[str]:
        """Keys with a live entry."""
        with self._lock.read_lock():
            if self._closed:
                return []
            return [key for key, cached in self._files.items() if not cached.closed]

    def __contains__(self, key: object) -> bool:
        with self._lock.read_lock():
            cached = self._files.get(key)  # type: ignore[arg-type]
            return not self._closed and cached is not None and not cached.closed

    def unmount(self, key: str) -> None:
        """Stop caching ``key`` and release its watch.

        Raises:
            IsClosed: The registry is closed.
            FileNotFound: No live entry exists for ``key``.
        """
        with self._lock.write_lock():
            if self._closed:
                raise IsClosed("file cacher")
            cached = self._live(key)
            del self._files[key]
            # Entry may have closed itself since the lookup
            with contextlib.suppress(IsClosed):
                cached.close()
        log.debug("Unmounted %r", key)

    def close(self) -> None:
        """Close every entry and refuse further use.

        Raises:
            IsClosed: The registry was already closed.
        """
        with self._lock.write_lock():
            if self._closed:
                raise IsClosed("file cacher")
            self._closed = True

            for cached in self._files.values():
                with contextlib.suppress(IsClosed):
                    cached.close()
            count = len(self._files)

            if self._owns_watcher:
                self._watcher.close()
        log.info("Closed file cacher for %s (%d entries)", self._root, count)

    def __enter__(self) -> FileCacher:
        return self

    def __exit__(self, *args: object) -> None:
        with contextlib.suppress(IsClosed):
            self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"{len(self._files)} entries"
        return f"FileCacher({str(self._root)!r}, {state})"


def open_cacher(
    root: str | os.PathLike[str],
    *,
    config: Config | None = None,
    watcher: WatchService | None = None,
) -> FileCacher:
    """Create a FileCacher for ``root``."""
    return FileCacher(root, watcher=watcher, config=config)
