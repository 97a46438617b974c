"""Change notification backends for cached files.

Two implementations of the same contract: a portable polling service
(the default) and a watchdog-backed service using native OS events.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from filecacher.watching.base import EventHandler, Subscription, WatchEvent, WatchService
from filecacher.watching.poller import PollingSubscription, PollingWatchService

if TYPE_CHECKING:
    from filecacher.config.schema import WatchConfig

BACKENDS = ("poll", "native")


def create_watch_service(config: WatchConfig) -> WatchService:
    """Build the watch service named by ``config.backend``."""
    backend = config.backend.lower()
    if backend == "poll":
        return PollingWatchService(poll_interval=config.poll_interval)
    if backend == "native":
        from filecacher.watching.native import NativeWatchService

        return NativeWatchService()
    raise ValueError(f"Unknown watch backend {config.backend!r} (expected one of {BACKENDS})")


__all__ = [
    "BACKENDS",
    "EventHandler",
    "PollingSubscription",
    "PollingWatchService",
    "Subscription",
    "WatchEvent",
    "WatchService",
    "create_watch_service",
]
