"""Tests for the configuration module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from filecacher.config import (
    Config,
    WatchConfig,
    get_config,
    load_config,
    reset_config,
)
from filecacher.config.loader import dict_to_config, env_overrides, merge
from filecacher.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)


class TestMerge:
    """Test the config merge rules."""

    def test_nested_merge(self) -> None:
        base = {"watch": {"backend": "poll", "poll_interval": 1.0}}
        override = {"watch": {"poll_interval": 0.2}}
        assert merge(base, override) == {"watch": {"backend": "poll", "poll_interval": 0.2}}

    def test_none_does_not_override(self) -> None:
        assert merge({"a": 1}, {"a": None}) == {"a": 1}

    def test_list_replaced(self) -> None:
        assert merge({"items": [1, 2]}, {"items": [3]}) == {"items": [3]}

    def test_base_not_mutated(self) -> None:
        base = {"watch": {"backend": "poll"}}
        merge(base, {"watch": {"backend": "native"}})
        assert base == {"watch": {"backend": "poll"}}


class TestConfigPaths:
    """Test platform-aware path resolution."""

    def test_windows_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.setenv("PROGRAMDATA", "C:\\ProgramData")
        path = get_system_config_path()
        assert path is not None
        assert "ProgramData" in str(path)
        assert path.name == "config.yaml"

    def test_windows_user_path_missing_appdata(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.delenv("APPDATA", raising=False)
        assert get_user_config_path() is None

    def test_unix_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        assert get_system_config_path() == Path("/etc/filecacher/config.yaml")

    def test_unix_user_path_xdg(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", "/home/test/.config-custom")
        assert get_user_config_path() == Path("/home/test/.config-custom/filecacher/config.yaml")

    def test_project_config_path(self) -> None:
        assert get_project_config_path("/srv/site") == Path("/srv/site/.filecacher/config.yaml")

    def test_order(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        paths = get_config_paths("/srv/site")
        assert len(paths) == 3
        assert "etc" in paths[0].parts
        assert paths[2] == Path("/srv/site/.filecacher/config.yaml")

    def test_no_root_no_project_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        assert len(get_config_paths()) == 2


class TestSchema:
    """Dataclass defaults and clamping."""

    def test_defaults(self) -> None:
        config = Config()
        assert config.watch.backend == "poll"
        assert config.watch.poll_interval == 1.0
        assert config.logging.level is None
        assert config.extra == {}

    def test_poll_interval_clamped(self) -> None:
        assert WatchConfig(poll_interval=0).poll_interval == 0.01


class TestConfigLoading:
    """Test configuration loading from YAML and environment."""

    @pytest.fixture
    def project(self, tmp_path: Path) -> Path:
        (tmp_path / ".filecacher").mkdir()
        return tmp_path

    def write(self, project: Path, text: str) -> None:
        (project / ".filecacher" / "config.yaml").write_text(text)

    def test_load_project_yaml(self, project: Path) -> None:
        self.write(project, "watch:\n  backend: native\n  poll_interval: 0.3\nlogging:\n  level: debug\n")
        config = load_config(root=project)
        assert config.watch.backend == "native"
        assert config.watch.poll_interval == 0.3
        assert config.logging.level == "debug"

    def test_user_config_below_project(self, project: Path, tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> None:
        xdg = tmp_path_factory.mktemp("xdg-user")
        (xdg / "filecacher").mkdir()
        (xdg / "filecacher" / "config.yaml").write_text("watch:\n  backend: native\n  poll_interval: 5\n")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
        self.write(project, "watch:\n  poll_interval: 0.5\n")

        config = load_config(root=project)
        assert config.watch.backend == "native"
        assert config.watch.poll_interval == 0.5

    def test_env_overrides_files(self, project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        self.write(project, "watch:\n  backend: native\n")
        monkeypatch.setenv("FILECACHER_WATCH_BACKEND", "poll")
        monkeypatch.setenv("FILECACHER_POLL_INTERVAL", "0.75")
        monkeypatch.setenv("FILECACHER_LOG", "/tmp/filecacher.log")
        monkeypatch.setenv("FILECACHER_LOG_LEVEL", "WARNING")

        config = load_config(root=project)
        assert config.watch.backend == "poll"
        assert config.watch.poll_interval == 0.75
        assert config.logging.file == "/tmp/filecacher.log"
        assert config.logging.level == "WARNING"

    def test_bad_env_interval_ignored(self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
        monkeypatch.setenv("FILECACHER_POLL_INTERVAL", "soon")
        with caplog.at_level("WARNING", logger="filecacher.config"):
            assert env_overrides() == {}
        assert "FILECACHER_POLL_INTERVAL" in caplog.text

    def test_invalid_yaml_uses_defaults(self, project: Path) -> None:
        self.write(project, "invalid: yaml: :")
        config = load_config(root=project)
        assert config.watch == WatchConfig()

    def test_non_mapping_yaml_ignored(self, project: Path) -> None:
        self.write(project, "- just\n- a list\n")
        assert load_config(root=project).watch.backend == "poll"

    def test_missing_files_use_defaults(self, tmp_path: Path) -> None:
        config = load_config(root=tmp_path)
        assert isinstance(config, Config)
        assert config.watch.backend == "poll"

    def test_bad_poll_interval_uses_default(self) -> None:
        config = dict_to_config({"watch": {"poll_interval": "fast"}})
        assert config.watch.poll_interval == 1.0

    def test_verbose_must_be_int(self) -> None:
        assert dict_to_config({"logging": {"verbose": "loud"}}).logging.verbose is None
        assert dict_to_config({"logging": {"verbose": 3}}).logging.verbose == 3

    def test_extra_fields_preserved(self, project: Path) -> None:
        self.write(project, "custom_field: custom_value\nnested:\n  field: value\n")
        config = load_config(root=project)
        assert config.extra["custom_field"] == "custom_value"
        assert config.extra["nested"]["field"] == "value"


class TestConfigCaching:
    """Test config caching behavior."""

    def test_get_config_caches(self) -> None:
        assert get_config() is get_config()

    def test_reset_clears_cache(self) -> None:
        first = get_config()
        reset_config()
        assert get_config() is not first

    def test_reload_replaces_cache(self) -> None:
        first = get_config()
        assert load_config(reload=True) is not first

    def test_project_config_not_cached(self, tmp_path: Path) -> None:
        project_config = load_config(root=tmp_path)
        assert get_config() is not project_config
