"""filecacher: in-memory file contents kept consistent by change notifications."""

__version__ = "0.1.0"

from filecacher.cached_file import CachedFile, FileState
from filecacher.config import Config, LoggingConfig, WatchConfig, load_config
from filecacher.errors import FileCacheError, FileExists, FileNotFound, IsClosed
from filecacher.logging import get_logger, setup_logging
from filecacher.registry import FileCacher, open_cacher
from filecacher.watching import (
    PollingWatchService,
    WatchEvent,
    WatchService,
    create_watch_service,
)

__all__ = [
    # Main entry points
    "FileCacher",
    "open_cacher",
    "CachedFile",
    "FileState",
    # Errors
    "FileCacheError",
    "FileExists",
    "FileNotFound",
    "IsClosed",
    # Watching
    "PollingWatchService",
    "WatchEvent",
    "WatchService",
    "create_watch_service",
    # Config
    "Config",
    "LoggingConfig",
    "WatchConfig",
    "load_config",
    # Logging
    "get_logger",
    "setup_logging",
]
