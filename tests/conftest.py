# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

from something_bg.app_config import ScheduledTaskConfig
from something_bg.cli.bootstrap import create_initial_state
from something_bg.tasks.task_scheduler import TaskScheduler
from something_bg.tasks.task_store import TaskStateStore

from .fakes import FakeClock, FakeSpawner

T0 = datetime(2025, 1, 10, 8, 0, tzinfo=timezone.utc)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap code.
    """
    return SimpleNamespace(
        app_name="something_bg-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        config_path=tmp_path / "config" / "config.toml",
        state_path=tmp_path / "data" / "task_state.json",
        console_enabled=False,
        poll_interval_seconds=30.0,
        tunnel_max_attempts=5,
        tunnel_retry_delay_seconds=0.0,
        wake_detection_enabled=False,
        wake_check_interval_seconds=10.0,
        wake_threshold_seconds=30.0,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture()
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture()
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "task_state.json"


@pytest.fixture()
def make_scheduler(state_path: Path, spawner: FakeSpawner, clock: FakeClock):
    def _make(**kwargs) -> TaskScheduler:
        kwargs.setdefault("path", "/usr/bin:/bin")
        kwargs.setdefault("clock", clock)
        return TaskScheduler(TaskStateStore(state_path), spawner, **kwargs)

    return _make


@pytest.fixture()
def backup_config() -> ScheduledTaskConfig:
    return ScheduledTaskConfig(
        name="Daily Backup",
        command="backup",
        args=["--all"],
        cron_schedule="0 6 * * *",
    )


@pytest.fixture()
def state(settings: SimpleNamespace, spawner: FakeSpawner):
    """AppState over the default config, with fake processes and no background threads."""
    st = create_initial_state(settings=settings, spawner=spawner, start=False)
    yield st
    if spawner.hold is not None:
        spawner.hold.set()
    st.cleanup()
    st.tunnel_manager.join_supervisors(timeout=5)
