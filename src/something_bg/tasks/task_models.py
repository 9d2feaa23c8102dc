# src/something_bg/tasks/task_models.py

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..core.errors import CronEvaluationError
from ..core.ports import ProcessSpawner
from .cron import CronSchedule
from .formatting import cron_to_human_readable

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TaskState:
    """Persisted runtime fields of one scheduled task."""

    last_run: datetime | None = None
    next_run: datetime | None = None

    def to_json(self) -> dict[str, Any]:
        return {
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "next_run": self.next_run.isoformat() if self.next_run else None,
        }


@dataclass(slots=True, frozen=True)
class TaskSnapshot:
    """Read-only copy of a task handed out to the shell."""

    key: str
    name: str
    cron_schedule: str
    last_run: datetime | None
    next_run: datetime | None
    schedule_description: str


@dataclass(slots=True)
class ScheduledTask:
    """
    One task's config plus its runtime state.

    Owned by TaskScheduler and only touched under its task lock.
    `next_run` is always computed eagerly (at add time or right after a run),
    never derived at read time.
    """

    key: str
    name: str
    command: str
    args: list[str]
    cron_schedule: str
    cron: CronSchedule
    last_run: datetime | None = None
    next_run: datetime | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    def is_due(self, now: datetime) -> bool:
        return self.next_run is not None and now >= self.next_run

    def is_missed(self, now: datetime) -> bool:
        """Due, and no run was recorded for the current next_run window."""
        if self.next_run is None or now < self.next_run:
            return False
        return self.last_run is None or self.last_run < self.next_run

    def compute_next_run(self, reference: datetime) -> datetime | None:
        try:
            nxt = self.cron.next_after(reference)
        except CronEvaluationError:
            logger.error(
                "Task '%s': failed to calculate next_run from %s",
                self.key,
                reference.isoformat(),
                exc_info=True,
            )
            return None
        logger.debug("Task '%s': next_run = %s", self.key, nxt.isoformat())
        return nxt

    def execute(self, spawner: ProcessSpawner, path: str, now: datetime) -> None:
        """
        Spawn the command (fire-and-forget) and advance the schedule.

        On SpawnFailed nothing is changed, so the task stays due and the next
        poll retries it. If the cron evaluation fails after a successful spawn
        the task goes dormant (next_run = None).
        """
        logger.info("Executing scheduled task '%s': %s %s", self.key, self.command, self.args)
        spawner.spawn(self.command, self.args, path=path)

        self.last_run = now
        self.next_run = self.compute_next_run(now)
        if self.next_run is None:
            logger.error("Task '%s' has no next run and is now dormant.", self.key)
        else:
            logger.info("Task '%s' executed. Next run: %s", self.key, self.next_run.isoformat())

    def to_state(self) -> TaskState:
        return TaskState(last_run=self.last_run, next_run=self.next_run)

    def snapshot(self) -> TaskSnapshot:
        return TaskSnapshot(
            key=self.key,
            name=self.name,
            cron_schedule=self.cron_schedule,
            last_run=self.last_run,
            next_run=self.next_run,
            schedule_description=cron_to_human_readable(self.cron_schedule),
        )


def build_task(
    key: str,
    *,
    name: str,
    command: str,
    args: Sequence[str],
    cron_schedule: str,
    cron: CronSchedule,
    state: TaskState | None,
    now: datetime,
    meta: dict[str, Any] | None = None,
) -> ScheduledTask:
    """
    Create a task, merging persisted state.

    A persisted next_run is reused verbatim so a due time computed before a
    restart is not pushed forward. Otherwise next_run is computed from `now`.
    """
    task = ScheduledTask(
        key=key,
        name=name,
        command=command,
        args=list(args),
        cron_schedule=cron_schedule,
        cron=cron,
        last_run=state.last_run if state else None,
        meta=dict(meta or {}),
    )

    if state is not None and state.next_run is not None:
        logger.info("Task '%s': loaded next_run from state file: %s", key, state.next_run.isoformat())
        task.next_run = state.next_run
    else:
        logger.info("Task '%s': no saved next_run, calculating from now", key)
        task.next_run = task.compute_next_run(now)

    logger.info(
        "Task '%s': initialized with last_run=%s next_run=%s",
        key,
        task.last_run.isoformat() if task.last_run else None,
        task.next_run.isoformat() if task.next_run else None,
    )
    return task
