"""Configuration file loading and caching.

Handles YAML parsing, environment variable overrides, the merge of all
sources and conversion into the typed ``Config`` dataclass.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from filecacher.config.paths import get_config_paths
from filecacher.config.schema import Config, LoggingConfig, WatchConfig

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("filecacher.config")

_cached_config: Config | None = None

_KNOWN_KEYS = {"watch", "logging"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML mapping, returning an empty dict if missing or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` updated with ``override``.

    Nested mappings merge key by key, anything else (lists included) is
    replaced, and ``None`` in ``override`` leaves the base value alone.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge(current, value)
        else:
            merged[key] = value
    return merged


def env_overrides() -> dict[str, Any]:
    """Build a config dict from FILECACHER_* environment variables."""
    watch: dict[str, Any] = {}
    log: dict[str, Any] = {}

    backend = os.environ.get("FILECACHER_WATCH_BACKEND")
    if backend:
        watch["backend"] = backend

    interval = os.environ.get("FILECACHER_POLL_INTERVAL")
    if interval:
        try:
            watch["poll_interval"] = float(interval)
        except ValueError:
            _log.warning("Ignoring FILECACHER_POLL_INTERVAL=%r: not a number", interval)

    log_path = os.environ.get("FILECACHER_LOG")
    if log_path:
        log["file"] = log_path

    level = os.environ.get("FILECACHER_LOG_LEVEL")
    if level:
        log["level"] = level

    overrides: dict[str, Any] = {}
    if watch:
        overrides["watch"] = watch
    if log:
        overrides["logging"] = log
    return overrides


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a merged dict into a typed Config."""
    watch_data = data.get("watch") or {}
    defaults = WatchConfig()
    try:
        poll_interval = float(watch_data.get("poll_interval", defaults.poll_interval))
    except (TypeError, ValueError):
        _log.warning("Invalid watch.poll_interval %r, using default", watch_data.get("poll_interval"))
        poll_interval = defaults.poll_interval
    watch = WatchConfig(
        backend=str(watch_data.get("backend", defaults.backend)).lower(),
        poll_interval=poll_interval,
    )

    log_data = data.get("logging") or {}
    verbose = log_data.get("verbose")
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        file=log_data.get("file"),
        verbose=verbose if isinstance(verbose, int) else None,
    )

    extra = {k: v for k, v in data.items() if k not in _KNOWN_KEYS}
    return Config(watch=watch, logging=logging_config, extra=extra)


def load_config(root: str | os.PathLike[str] | None = None, reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Project config (<root>/.filecacher/config.yaml)
    3. User config
    4. System config

    Args:
        root: Cache root directory for project-level config.
        reload: Force reload even if cached.

    Returns:
        Merged Config object.
    """
    global _cached_config

    if _cached_config is not None and not reload and root is None:
        return _cached_config

    merged: dict[str, Any] = {}
    for path in get_config_paths(root):
        data = load_yaml_file(path)
        if data:
            _log.debug("Loaded config from %s", path)
            merged = merge(merged, data)
    merged = merge(merged, env_overrides())

    config = dict_to_config(merged)

    # Only the root-less config is shared process-wide
    if root is None:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Forget the cached global config."""
    global _cached_config
    _cached_config = None
