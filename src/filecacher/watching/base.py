"""Watch service contract shared by all backends."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol


class WatchEvent(Enum):
    """Change kinds delivered to a subscription handler."""

    WRITE = "write"
    REMOVE = "remove"


EventHandler = Callable[[WatchEvent], None]


@dataclass(frozen=True)
class FileSnapshot:
    """The stat fields used to decide whether a file changed."""

    mtime_ns: int
    size: int
    inode: int

    @classmethod
    def of(cls, path: Path) -> FileSnapshot:
        st = os.stat(path)
        return cls(mtime_ns=st.st_mtime_ns, size=st.st_size, inode=st.st_ino)

    @classmethod
    def maybe(cls, path: Path) -> FileSnapshot | None:
        """Snapshot of ``path``, or None if it cannot be stat'ed."""
        try:
            return cls.of(path)
        except OSError:
            return None


class Subscription(Protocol):
    """One path's registration with a watch service."""

    path: Path

    def start(self) -> None:
        """Begin delivering events. Calling it again is a no-op."""
        ...

    def release(self) -> None:
        """Stop delivering events. Safe to call more than once."""
        ...


class WatchService(Protocol):
    """Something that observes paths and calls handlers on change."""

    def subscribe(self, path: Path, handler: EventHandler) -> Subscription:
        """Register ``handler`` for ``path``.

        Raises:
            FileNotFound: ``path`` does not exist.
        """
        ...

    def close(self) -> None:
        """Release every live subscription and stop background work."""
        ...
