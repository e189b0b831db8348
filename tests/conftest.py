"""Shared test fixtures for autorsync."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from autorsync.config import Settings
from autorsync.filesystem.tree_watcher import ChangeStream
from autorsync.models import GlobalSettings
from tests._fakes import FakeObserver, RecordingExecutor

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """Create a small source tree with an excluded build directory."""
    src = tmp_path / "src"
    (src / "pkg" / "sub").mkdir(parents=True)
    (src / "build" / "out").mkdir(parents=True)
    (src / "docs").mkdir()
    (src / "pkg" / "module.py").write_text("x = 1\n")
    (src / "README").write_text("hello\n")
    return src


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Process settings that ignore the environment's .env file."""
    return Settings(
        _env_file=None,
        config_file=tmp_path / ".autorsync",
        rsync_path="/usr/bin/rsync",
        debug=True,
        event_buffer_size=16,
    )


@pytest.fixture
def global_settings() -> GlobalSettings:
    return GlobalSettings(interval=1.0, rsync_args=("--delete",))


@pytest.fixture
def fake_observer() -> FakeObserver:
    return FakeObserver()


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
async def stream() -> ChangeStream:
    return ChangeStream(maxsize=16)
