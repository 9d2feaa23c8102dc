# tests/test_bootstrap_state.py

from __future__ import annotations

import json
import threading
from types import SimpleNamespace

from something_bg.cli.bootstrap import create_initial_state

from .fakes import FakeSpawner


def test_create_initial_state_wires_components(state, settings: SimpleNamespace) -> None:
    assert settings.config_path.exists()
    assert state.paths.state_path == settings.state_path
    assert [t.key for t in state.scheduler.get_all_tasks()] == ["daily-backup"]
    assert sorted(state.tunnel_manager.registry.keys()) == ["colima", "example-ssh", "k8s-example"]
    assert not state.scheduler.is_running

    # Initial next_run values are persisted right away.
    data = json.loads(settings.state_path.read_text("utf-8"))
    assert data["daily-backup"]["last_run"] is None
    assert data["daily-backup"]["next_run"] is not None


def test_invalid_schedule_is_skipped_at_startup(settings: SimpleNamespace, spawner: FakeSpawner) -> None:
    settings.config_path.parent.mkdir(parents=True)
    settings.config_path.write_text(
        "[schedules.broken]\n"
        'name = "b"\ncommand = "echo"\ncron_schedule = "every day"\n'
        "[schedules.hourly]\n"
        'name = "h"\ncommand = "echo"\ncron_schedule = "0 * * * *"\n',
        "utf-8",
    )
    st = create_initial_state(settings=settings, spawner=spawner, start=False)
    assert [t.key for t in st.scheduler.get_all_tasks()] == ["hourly"]
    st.cleanup()


def test_missed_task_runs_on_startup(settings: SimpleNamespace, spawner: FakeSpawner) -> None:
    settings.state_path.parent.mkdir(parents=True)
    settings.state_path.write_text(
        json.dumps({"daily-backup": {"last_run": None, "next_run": "2020-01-01T06:00:00+00:00"}}),
        "utf-8",
    )

    st = create_initial_state(settings=settings, spawner=spawner, start=True)
    try:
        assert st.scheduler.is_running
        assert spawner.spawn_count("echo") == 1
        snap = st.scheduler.get_task("daily-backup")
        assert snap is not None and snap.last_run is not None
    finally:
        st.cleanup()
        st.scheduler.join(timeout=5)

    assert not st.scheduler.is_running


def test_cleanup_runs_once(state, spawner: FakeSpawner) -> None:
    spawner.hold = threading.Event()
    state.tunnel_manager.toggle("colima", True)

    state.cleanup()
    state.cleanup()

    assert spawner.run_count("colima") == 1
    assert not state.tunnel_manager.has_active_tunnels()


def test_wake_restarts_tunnels_and_runs_missed_tasks(state, spawner: FakeSpawner) -> None:
    spawner.hold = threading.Event()
    state.tunnel_manager.toggle("colima", True)

    # Pretend the machine slept through the scheduled time.
    task = state.scheduler._tasks["daily-backup"]
    task.next_run = task.next_run.replace(year=2020)

    state.handle_wake_from_sleep()

    assert spawner.run_count("colima") == 1
    assert state.tunnel_manager.is_active("colima")
    assert spawner.spawn_count("echo") == 1
