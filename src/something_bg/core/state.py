# src/something_bg/core/state.py

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..app_config import AppConfig
from ..paths import AppPaths
from ..tasks.task_scheduler import TaskScheduler
from ..tunnels.tunnel_manager import TunnelManager

if TYPE_CHECKING:
    from .wake_detector import WakeDetector

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """
    Everything the shell needs, built once in cli/bootstrap.py and passed
    explicitly to whatever dispatches user actions.
    """

    # Settings (or a SimpleNamespace in tests).
    settings: object
    paths: AppPaths
    config: AppConfig
    scheduler: TaskScheduler
    tunnel_manager: TunnelManager

    wake_detector: WakeDetector | None = None
    _cleaned_up: bool = field(default=False, init=False, repr=False)
    _cleanup_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def handle_wake_from_sleep(self) -> None:
        """Recycle tunnels that may be wedged, then catch up on missed tasks."""
        logger.info("System woke from sleep - restarting active tunnels and checking tasks")
        self.tunnel_manager.restart_active_tunnels()
        self.scheduler.check_and_run_missed_tasks()

    def reload_config(self) -> AppConfig:
        """
        Re-read config.toml and apply tunnel definitions and PATH.

        Supervisors pick up the new definitions on their next attempt.
        Scheduled tasks keep their schedules until restart; only their PATH
        changes.
        """
        config = AppConfig.load(self.paths.config_path)
        env_path = config.get_path()

        self.tunnel_manager.registry.reload(config.to_tunnel_commands())
        self.tunnel_manager.set_env_path(env_path)
        self.scheduler.set_path(env_path)
        self.config = config
        logger.info("Configuration reloaded from %s", self.paths.config_path)
        return config

    def cleanup(self) -> None:
        """Stop tunnels and the scheduler. Runs once; later calls are no-ops."""
        with self._cleanup_lock:
            if self._cleaned_up:
                return
            self._cleaned_up = True

        if self.wake_detector is not None:
            self.wake_detector.stop()
        self.tunnel_manager.cleanup()
        self.scheduler.stop()
        logger.info("Cleanup finished")
