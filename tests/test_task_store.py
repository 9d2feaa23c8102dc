# tests/test_task_store.py

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

from something_bg.tasks.task_models import TaskState
from something_bg.tasks.task_store import TaskStateStore


def test_missing_file_is_empty_map(tmp_path: Path) -> None:
    store = TaskStateStore(tmp_path / "nope" / "state.json")
    assert store.load() == {}
    assert store.get("anything") is None


def test_save_and_reload_reproduces_timestamps(tmp_path: Path) -> None:
    path = tmp_path / "state" / "task_state.json"
    cet = timezone(timedelta(hours=1))
    states = {
        "daily-backup": TaskState(
            last_run=datetime(2025, 1, 11, 6, 0, 1, 250000, tzinfo=cet),
            next_run=datetime(2025, 1, 12, 6, 0, tzinfo=cet),
        ),
        "never-ran": TaskState(last_run=None, next_run=datetime(2025, 1, 12, 6, 0, tzinfo=cet)),
        "dormant": TaskState(last_run=datetime(2025, 1, 1, tzinfo=cet), next_run=None),
    }

    assert TaskStateStore(path).save(states) is True
    reloaded = TaskStateStore(path).load()

    assert reloaded == states


def test_save_overwrites_whole_file(tmp_path: Path) -> None:
    path = tmp_path / "task_state.json"
    store = TaskStateStore(path)
    t = datetime(2025, 1, 1, tzinfo=timezone.utc)

    store.save({"a": TaskState(t, t), "b": TaskState(t, t)})
    store.save({"a": TaskState(None, t)})

    data = json.loads(path.read_text("utf-8"))
    assert list(data) == ["a"]
    assert data["a"] == {"last_run": None, "next_run": t.isoformat()}
    assert not (tmp_path / "task_state.json.tmp").exists()


def test_corrupt_file_falls_back_to_empty(tmp_path: Path) -> None:
    path = tmp_path / "task_state.json"
    path.write_text("{not json", "utf-8")
    assert TaskStateStore(path).load() == {}


def test_bad_entries_are_skipped(tmp_path: Path) -> None:
    path = tmp_path / "task_state.json"
    path.write_text(
        json.dumps(
            {
                "good": {"last_run": None, "next_run": "2025-01-11T06:00:00+00:00"},
                "bad-ts": {"last_run": "yesterday", "next_run": None},
                "not-a-dict": 5,
            }
        ),
        "utf-8",
    )
    states = TaskStateStore(path).load()
    assert list(states) == ["good"]
    assert states["good"].next_run == datetime(2025, 1, 11, 6, 0, tzinfo=timezone.utc)


def test_naive_timestamps_are_read_as_local_time(tmp_path: Path) -> None:
    path = tmp_path / "task_state.json"
    path.write_text(json.dumps({"t": {"last_run": "2025-01-11T06:00:00", "next_run": None}}), "utf-8")
    st = TaskStateStore(path).load()["t"]
    assert st.last_run is not None
    assert st.last_run.tzinfo is not None
    assert st.last_run.replace(tzinfo=None) == datetime(2025, 1, 11, 6, 0)


def test_unwritable_location_keeps_in_memory_state(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", "utf-8")
    store = TaskStateStore(blocker / "task_state.json")
    t = datetime(2025, 1, 1, tzinfo=timezone.utc)

    assert store.save({"a": TaskState(t, t)}) is False
    assert store.get("a") == TaskState(t, t)


def test_timestamps_load_in_dst_aware_local_zone(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("TZ", "Europe/Berlin")
    path = tmp_path / "task_state.json"
    path.write_text(
        json.dumps(
            {
                "winter": {"last_run": "2025-01-11T06:00:00", "next_run": None},
                "summer": {"last_run": "2025-07-11T06:00:00", "next_run": "2025-07-12T04:00:00+00:00"},
            }
        ),
        "utf-8",
    )
    states = TaskStateStore(path).load()

    assert states["winter"].last_run.utcoffset() == timedelta(hours=1)
    assert states["summer"].last_run.utcoffset() == timedelta(hours=2)
    # Aware timestamps keep their instant and are moved into the local zone.
    nxt = states["summer"].next_run
    assert nxt == datetime(2025, 7, 12, 4, 0, tzinfo=timezone.utc)
    assert str(nxt.tzinfo) == "Europe/Berlin"
    assert nxt.hour == 6
