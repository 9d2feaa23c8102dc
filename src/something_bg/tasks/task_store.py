# src/something_bg/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
import threading
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from ..core.errors import PersistenceFailed
from ..core.localtime import to_local
from .task_models import TaskState

logger = logging.getLogger(__name__)


def _parse_ts(raw: Any) -> datetime | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValueError(f"timestamp must be a string, got {type(raw).__name__}")
    # Naive timestamps are local wall time.
    return to_local(datetime.fromisoformat(raw))


class TaskStateStore:
    """
    JSON file holding {task_key: {"last_run": ..., "next_run": ...}}.

    Every save rewrites the whole file (temp file + os.replace). A missing
    file is the same as an empty map. Read/write failures are logged and
    never propagate: the scheduler keeps running on in-memory state.

    Thread-safety:
    - the in-memory map is only ever replaced as a whole, under self._lock
    - file writes happen under the same lock, so saves never interleave
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._states: dict[str, TaskState] = {}

    @property
    def path(self) -> Path:
        return self._path

    # ---- low-level helpers ----

    def _read(self) -> dict[str, TaskState]:
        try:
            raw = self._path.read_text("utf-8")
        except OSError as e:
            raise PersistenceFailed(f"Failed to read task state file {self._path}: {e}") from e

        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as e:
            raise PersistenceFailed(f"Failed to parse task state file {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceFailed(f"Task state file {self._path} must contain a JSON object")

        out: dict[str, TaskState] = {}
        for key, entry in data.items():
            if not isinstance(entry, dict):
                logger.warning("Skipping malformed state entry for task '%s'", key)
                continue
            try:
                out[str(key)] = TaskState(
                    last_run=_parse_ts(entry.get("last_run")),
                    next_run=_parse_ts(entry.get("next_run")),
                )
            except ValueError:
                logger.warning("Skipping state entry with bad timestamps for task '%s'", key, exc_info=True)
        return out

    def _write(self, states: Mapping[str, TaskState]) -> None:
        try:
            payload = json.dumps({k: v.to_json() for k, v in states.items()}, indent=2, sort_keys=True)
        except (TypeError, ValueError) as e:
            raise PersistenceFailed(f"Failed to serialize task states: {e}") from e

        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload + "\n", "utf-8")
            os.replace(tmp, self._path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise PersistenceFailed(f"Failed to write task state file {self._path}: {e}") from e

    # ---- public API ----

    def load(self) -> dict[str, TaskState]:
        """Load the file into memory; defaults to an empty map on any failure."""
        states: dict[str, TaskState] = {}
        if self._path.exists():
            try:
                states = self._read()
                logger.info("Loaded task states for %d tasks from %s", len(states), self._path)
            except PersistenceFailed:
                logger.warning("Using empty task state.", exc_info=True)
        else:
            logger.info("No task state file at %s, starting fresh", self._path)

        with self._lock:
            self._states = states
        return dict(states)

    def get(self, key: str) -> TaskState | None:
        with self._lock:
            st = self._states.get(key)
            return TaskState(st.last_run, st.next_run) if st else None

    def snapshot(self) -> dict[str, TaskState]:
        with self._lock:
            return {k: TaskState(v.last_run, v.next_run) for k, v in self._states.items()}

    def save(self, states: Mapping[str, TaskState]) -> bool:
        """
        Replace the in-memory map and rewrite the file.

        Returns False (after logging) if the file could not be written; the
        in-memory map is replaced regardless.
        """
        new_states = {k: TaskState(v.last_run, v.next_run) for k, v in states.items()}
        with self._lock:
            self._states = new_states
            try:
                self._write(new_states)
            except PersistenceFailed:
                logger.exception("Failed to save task states")
                return False
        logger.debug("Saved task states for %d tasks to %s", len(new_states), self._path)
        return True
