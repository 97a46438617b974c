"""Error taxonomy shared by cached files and the registry.

The concrete classes also derive from the matching builtin ``OSError``
subclasses where one exists, so callers can catch either form.
Any other filesystem failure surfaces as the original ``OSError``.
"""

from __future__ import annotations


class FileCacheError(Exception):
    """Base class for all filecacher errors."""


class FileNotFound(FileCacheError, FileNotFoundError):
    """A key or path does not resolve to a live entry or an existing file."""

    def __init__(self, target: object = None) -> None:
        self.target = target
        message = "file not found" if target is None else f"file not found: {target}"
        super().__init__(message)


class FileExists(FileCacheError, FileExistsError):
    """A live entry already exists for the requested key."""

    def __init__(self, key: str | None = None) -> None:
        self.key = key
        message = "file already exists" if key is None else f"file already exists: {key}"
        super().__init__(message)


class IsClosed(FileCacheError):
    """The cached file or registry has already been closed."""

    def __init__(self, what: str = "entity") -> None:
        self.what = what
        super().__init__(f"{what} is closed")
