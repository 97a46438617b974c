"""Root pytest configuration for all tests."""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from pathlib import Path

import pytest

from filecacher import FileCacher, IsClosed
from filecacher.config import reset_config
from tests.utils import ManualWatchService


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep the developer's own config files and FILECACHER_* vars out of tests."""
    for var in (
        "FILECACHER_LOG",
        "FILECACHER_LOG_LEVEL",
        "FILECACHER_WATCH_BACKEND",
        "FILECACHER_POLL_INTERVAL",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path_factory.mktemp("xdg")))
    reset_config()
    yield
    reset_config()


@pytest.fixture
def watcher() -> ManualWatchService:
    return ManualWatchService()


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """Cache root with a couple of files in it."""
    (tmp_path / "a.txt").write_bytes(b"hello")
    (tmp_path / "b.txt").write_bytes(b"bravo")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "c.txt").write_bytes(b"charlie")
    return tmp_path


@pytest.fixture
def cacher(root: Path, watcher: ManualWatchService) -> Iterator[FileCacher]:
    fc = FileCacher(root, watcher=watcher)
    yield fc
    with contextlib.suppress(IsClosed):
        fc.close()
