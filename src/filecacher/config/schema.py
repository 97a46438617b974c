"""Configuration schema dataclasses for filecacher.

All fields carry defaults so partial configs from several files can be
merged together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Poll intervals below this are clamped
MIN_POLL_INTERVAL = 0.01


@dataclass
class WatchConfig:
    """Change notification settings.

    Example config.yaml:
        watch:
          backend: native
          poll_interval: 0.5
    """

    backend: str = "poll"  # "poll" or "native"
    poll_interval: float = 1.0  # Seconds between stat checks (poll backend only)

    def __post_init__(self) -> None:
        self.poll_interval = max(MIN_POLL_INTERVAL, float(self.poll_interval))


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, VERBOSE, INFO, WARNING, ERROR
    file: str | None = None  # Log file path
    verbose: int | None = None  # 0-4, overrides level


@dataclass
class Config:
    """Root configuration object."""

    watch: WatchConfig = field(default_factory=WatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    extra: dict[str, Any] = field(default_factory=dict)  # Unknown top-level keys
