# src/something_bg/tasks/task_scheduler.py

from __future__ import annotations

"""
Task scheduler.

A polling loop on its own thread that:
- runs every task whose next_run has passed,
- advances last_run/next_run after each successful spawn,
- persists a full snapshot of all tasks after any change.

Manual runs and missed-run recovery (startup, wake from sleep) go through the
same task lock, so a task never executes concurrently with itself.
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime

from ..app_config import ScheduledTaskConfig
from ..core.errors import SpawnFailed, TaskNotFound
from ..core.localtime import local_now
from ..core.ports import Clock, ProcessSpawner
from .cron import CronSchedule
from .task_models import ScheduledTask, TaskSnapshot, TaskState, build_task
from .task_store import TaskStateStore

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 30.0


class TaskScheduler:
    def __init__(
        self,
        store: TaskStateStore,
        spawner: ProcessSpawner,
        *,
        path: str,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        clock: Clock | None = None,
        compile_cron: Callable[[str], CronSchedule] = CronSchedule.parse,
    ) -> None:
        self._store = store
        self._spawner = spawner
        self._path = path
        self._interval = max(0.01, float(poll_interval_seconds))
        self._clock: Clock = clock or local_now
        self._compile_cron = compile_cron

        # Guards the task map and every execution attempt.
        self._tasks_lock = threading.Lock()
        self._tasks: dict[str, ScheduledTask] = {}

        # Serializes snapshot+write so an older snapshot never lands last.
        self._save_lock = threading.Lock()

        self._run_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        self._store.load()

    # ---- task registry ----

    def add_task(self, key: str, config: ScheduledTaskConfig) -> None:
        """
        Register a task, merging any persisted state for `key`.

        Raises InvalidSchedule if the cron expression does not parse.
        """
        logger.info("Creating task '%s' with schedule '%s'", key, config.cron_schedule)
        cron = self._compile_cron(config.cron_schedule)
        task = build_task(
            key,
            name=config.name,
            command=config.command,
            args=config.args,
            cron_schedule=config.cron_schedule,
            cron=cron,
            state=self._store.get(key),
            now=self._clock(),
            meta=config.display_meta(),
        )
        with self._tasks_lock:
            self._tasks[key] = task

    def get_task(self, key: str) -> TaskSnapshot | None:
        with self._tasks_lock:
            task = self._tasks.get(key)
            return task.snapshot() if task else None

    def get_all_tasks(self) -> list[TaskSnapshot]:
        with self._tasks_lock:
            return [t.snapshot() for t in self._tasks.values()]

    def set_path(self, path: str) -> None:
        """PATH given to task commands from the next execution on."""
        with self._tasks_lock:
            self._path = path

    # ---- persistence ----

    def save_states(self) -> bool:
        """Persist the runtime fields of every task (never a subset)."""
        with self._save_lock:
            with self._tasks_lock:
                states: dict[str, TaskState] = {k: t.to_state() for k, t in self._tasks.items()}
            return self._store.save(states)

    # ---- execution ----

    def _execute_locked(self, task: ScheduledTask, now: datetime) -> bool:
        """Caller must hold self._tasks_lock."""
        try:
            task.execute(self._spawner, self._path, now)
        except SpawnFailed:
            logger.exception("Task '%s' execution failed; will retry at next poll", task.key)
            return False
        return True

    def poll_once(self) -> bool:
        """Run every due task once. Returns True if any task executed."""
        ran_any = False
        with self._tasks_lock:
            now = self._clock()
            for key, task in self._tasks.items():
                if task.is_due(now):
                    logger.debug("Task '%s' is due to run", key)
                    if self._execute_locked(task, now):
                        ran_any = True

        if ran_any:
            self.save_states()
        return ran_any

    def run_task_now(self, key: str) -> None:
        """
        Run a task immediately, regardless of its schedule.

        Raises TaskNotFound or SpawnFailed.
        """
        with self._tasks_lock:
            task = self._tasks.get(key)
            if task is None:
                raise TaskNotFound(key)
            task.execute(self._spawner, self._path, self._clock())

        self.save_states()

    def check_and_run_missed_tasks(self) -> list[str]:
        """
        Run tasks whose due time passed without a recorded run.

        Called once at startup and after wake from sleep. A task that already
        ran for its current window (last_run >= next_run) is not re-run, so
        calling this twice in a row executes each missed task at most once.
        Returns the keys that were executed.
        """
        executed: list[str] = []
        with self._tasks_lock:
            now = self._clock()
            logger.info("Checking for missed scheduled tasks (current time: %s)", now.isoformat())

            for key, task in self._tasks.items():
                if task.next_run is None:
                    logger.info("Task '%s' has no next_run scheduled", key)
                    continue

                logger.debug(
                    "Task '%s': schedule=%s next_run=%s last_run=%s",
                    key,
                    task.cron_schedule,
                    task.next_run.isoformat(),
                    task.last_run.isoformat() if task.last_run else None,
                )
                if not task.is_missed(now):
                    continue

                logger.info(
                    "Task '%s' was scheduled to run at %s but was missed. Running now.",
                    key,
                    task.next_run.isoformat(),
                )
                if self._execute_locked(task, now):
                    executed.append(key)

        if executed:
            self.save_states()
        return executed

    # ---- polling loop ----

    @property
    def is_running(self) -> bool:
        t = self._thread
        return t is not None and t.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        """Start the polling thread (no-op if it is already running)."""
        with self._run_lock:
            if self.is_running:
                logger.warning("Scheduler is already running")
                return

            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run_loop,
                args=(self._stop_event,),
                name="task-scheduler",
                daemon=True,
            )
            self._thread.start()

    def _run_loop(self, stop_event: threading.Event) -> None:
        logger.info("Task scheduler started (interval=%.1fs, tasks=%d)", self._interval, len(self._tasks))
        while not stop_event.is_set():
            try:
                self.poll_once()
            except Exception:
                logger.exception("Scheduler poll failed")
            stop_event.wait(self._interval)
        logger.info("Task scheduler stopped")

    def stop(self) -> None:
        """Ask the polling thread to exit. Never blocks on the task lock."""
        if not self._stop_event.is_set():
            logger.info("Stopping task scheduler")
        self._stop_event.set()

    def join(self, timeout: float | None = None) -> None:
        t = self._thread
        if t is not None:
            t.join(timeout=timeout)

    def __enter__(self) -> TaskScheduler:
        self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()
