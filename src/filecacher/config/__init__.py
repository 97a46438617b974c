"""Configuration management for filecacher.

Hierarchical YAML configuration, merged from system, user and project
(cache root) files with FILECACHER_* environment overrides on top.

Example usage:
    from filecacher.config import load_config

    config = load_config(root="/srv/templates")
    print(config.watch.backend, config.watch.poll_interval)
"""

from filecacher.config.loader import (
    get_config,
    load_config,
    reset_config,
)
from filecacher.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from filecacher.config.schema import (
    Config,
    LoggingConfig,
    WatchConfig,
)

__all__ = [
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    "LoggingConfig",
    "WatchConfig",
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]
