"""Platform-aware configuration path resolution.

- Windows: %PROGRAMDATA% (system), %APPDATA% (user)
- Unix: /etc/ (system), $XDG_CONFIG_HOME, ~/.config/ or ~/.filecacher/ (user)
- Project: <cache root>/.filecacher/
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
APP_NAME = "filecacher"
DOT_DIR = ".filecacher"


def get_system_config_path() -> Path | None:
    """Return the system-wide config file location (may not exist)."""
    if sys.platform == "win32":
        program_data = os.environ.get("PROGRAMDATA")
        if not program_data:
            return None
        return Path(program_data) / APP_NAME / CONFIG_FILENAME
    return Path("/etc") / APP_NAME / CONFIG_FILENAME


def get_user_config_path() -> Path | None:
    """Return the per-user config file location (may not exist)."""
    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        if not app_data:
            return None
        return Path(app_data) / APP_NAME / CONFIG_FILENAME

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME / CONFIG_FILENAME

    home = Path.home()
    if (home / ".config").exists():
        return home / ".config" / APP_NAME / CONFIG_FILENAME
    return home / DOT_DIR / CONFIG_FILENAME


def get_project_config_path(root: str | os.PathLike[str]) -> Path:
    """Return the config file that lives beside the cached files under ``root``."""
    return Path(root) / DOT_DIR / CONFIG_FILENAME


def get_config_paths(root: str | os.PathLike[str] | None = None) -> list[Path]:
    """All config paths, lowest priority first: system, user, project."""
    paths = [p for p in (get_system_config_path(), get_user_config_path()) if p]
    if root:
        paths.append(get_project_config_path(root))
    return paths
