# src/something_bg/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- loads config.toml (creating a default one if missing),
- wires the tunnel manager and task scheduler into AppState,
- registers scheduled tasks, persists their initial state, starts polling,
- replays missed runs once at startup.
"""

from __future__ import annotations

import logging

from ..app_config import AppConfig
from ..config import get_settings
from ..core.errors import InvalidSchedule
from ..core.ports import ProcessSpawner
from ..core.process import SubprocessSpawner
from ..core.state import AppState
from ..core.wake_detector import WakeDetector
from ..paths import AppPaths
from ..tasks.task_scheduler import TaskScheduler
from ..tasks.task_store import TaskStateStore
from ..tunnels.tunnel_manager import TunnelCommandRegistry, TunnelManager

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.config_path.parent.mkdir(parents=True, exist_ok=True)
    settings.state_path.parent.mkdir(parents=True, exist_ok=True)


def register_tasks(scheduler: TaskScheduler, config: AppConfig) -> list[str]:
    """Add every configured task; a bad schedule is logged and skipped."""
    added: list[str] = []
    for key, task_config in config.schedules:
        try:
            scheduler.add_task(key, task_config)
        except InvalidSchedule:
            logger.exception("Failed to add scheduled task '%s'", key)
            continue
        added.append(key)
    return added


def create_initial_state(*, settings=None, spawner: ProcessSpawner | None = None, start: bool = True) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and the spawner injectable makes the app easier to test.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    paths = AppPaths(config_path=settings.config_path, state_path=settings.state_path)
    config = AppConfig.load(paths.config_path)
    env_path = config.get_path()
    spawner = spawner or SubprocessSpawner()

    tunnel_manager = TunnelManager(
        TunnelCommandRegistry(config.to_tunnel_commands()),
        spawner,
        env_path=env_path,
        max_attempts=settings.tunnel_max_attempts,
        retry_delay_seconds=settings.tunnel_retry_delay_seconds,
    )

    scheduler = TaskScheduler(
        TaskStateStore(paths.state_path),
        spawner,
        path=env_path,
        poll_interval_seconds=settings.poll_interval_seconds,
    )
    added = register_tasks(scheduler, config)

    # Persist initial next_run values so they survive a restart.
    scheduler.save_states()

    state = AppState(
        settings=settings,
        paths=paths,
        config=config,
        scheduler=scheduler,
        tunnel_manager=tunnel_manager,
    )

    if start:
        scheduler.start()
        logger.info("Task scheduler started with %d tasks", len(added))

        logger.info("Checking for missed tasks on startup...")
        scheduler.check_and_run_missed_tasks()

        if settings.wake_detection_enabled:
            state.wake_detector = WakeDetector(
                state.handle_wake_from_sleep,
                check_interval=settings.wake_check_interval_seconds,
                threshold=settings.wake_threshold_seconds,
            )
            state.wake_detector.start()

    return state
