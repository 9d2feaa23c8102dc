# tests/fakes.py

from __future__ import annotations

import itertools
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from something_bg.core.errors import CronEvaluationError, SpawnFailed


class FakeClock:
    """Controllable clock: returns `now` until moved."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeChild:
    """
    Spawned process stand-in.

    exits immediately unless `hold` is given; then wait() blocks until the
    event is set.
    """

    _pids = itertools.count(1000)

    def __init__(self, hold: threading.Event | None = None, code: int = 0) -> None:
        self.pid = next(self._pids)
        self._hold = hold
        self._code = code

    def wait(self) -> int:
        if self._hold is not None:
            self._hold.wait(timeout=10.0)
        return self._code


@dataclass
class SpawnCall:
    program: str
    args: list[str]
    path: str | None


@dataclass
class FakeSpawner:
    """
    Records spawn/run calls.

    - fail_spawn: programs whose spawn() raises SpawnFailed
    - fail_run: programs whose run() raises SpawnFailed
    - hold: if set, spawned children block in wait() until it is set
    """

    fail_spawn: set[str] = field(default_factory=set)
    fail_run: set[str] = field(default_factory=set)
    hold: threading.Event | None = None
    spawned: list[SpawnCall] = field(default_factory=list)
    ran: list[SpawnCall] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def spawn(self, program: str, args: Sequence[str], *, path: str) -> FakeChild:
        with self._lock:
            self.spawned.append(SpawnCall(program, list(args), path))
        if program in self.fail_spawn:
            raise SpawnFailed(program, FileNotFoundError(2, "No such file or directory", program))
        return FakeChild(hold=self.hold)

    def run(self, program: str, args: Sequence[str], *, path: str | None = None) -> int:
        with self._lock:
            self.ran.append(SpawnCall(program, list(args), path))
        if program in self.fail_run:
            raise SpawnFailed(program, FileNotFoundError(2, "No such file or directory", program))
        return 0

    def spawn_count(self, program: str) -> int:
        with self._lock:
            return sum(1 for c in self.spawned if c.program == program)

    def run_count(self, program: str) -> int:
        with self._lock:
            return sum(1 for c in self.ran if c.program == program)


class BrokenCron:
    """Cron handle whose evaluation always fails (e.g. an impossible date)."""

    expression = "0 0 31 2 *"

    def next_after(self, reference: datetime) -> datetime:
        raise CronEvaluationError(f"no occurrence after {reference.isoformat()}")
