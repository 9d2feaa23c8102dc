# src/something_bg/tunnels/tunnel_manager.py

from __future__ import annotations

"""
Tunnel lifecycle: start/stop configured long-lived commands.

Each enable spawns one supervisor thread that keeps the start command alive
(respawning when the child exits) up to a fixed number of attempts, for as
long as the key stays in the active set. Disabling removes the key and runs
the stop command; the supervisor notices on its next iteration.
"""

import logging
import os
import threading
import time
from collections import Counter
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from ..core.errors import SpawnFailed, TunnelNotFound
from ..core.ports import ProcessSpawner
from ..core.process import merge_path

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_RETRY_DELAY_SECONDS = 1.0


@dataclass(frozen=True, slots=True)
class TunnelCommand:
    command: str
    args: tuple[str, ...]
    kill_command: str
    kill_args: tuple[str, ...]


class TunnelCommandRegistry:
    """
    key -> TunnelCommand, shared read-only by supervisor threads.

    reload() swaps the whole mapping; lookups always see either the old or
    the new mapping, never a mix.
    """

    def __init__(self, commands: Mapping[str, TunnelCommand] | None = None) -> None:
        self._commands: dict[str, TunnelCommand] = dict(commands or {})

    def get(self, key: str) -> TunnelCommand | None:
        return self._commands.get(key)

    def keys(self) -> list[str]:
        return list(self._commands)

    def __contains__(self, key: object) -> bool:
        return key in self._commands

    def reload(self, commands: Mapping[str, TunnelCommand]) -> None:
        self._commands = dict(commands)
        logger.info("Tunnel command registry reloaded (%d tunnels)", len(self._commands))


class TunnelManager:
    def __init__(
        self,
        registry: TunnelCommandRegistry,
        spawner: ProcessSpawner,
        *,
        env_path: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._registry = registry
        self._spawner = spawner
        self._env_path = env_path
        self._max_attempts = max(1, int(max_attempts))
        self._retry_delay = max(0.0, float(retry_delay_seconds))
        self._sleep = sleep

        # Guards the active set, generations and supervisor bookkeeping.
        self._lock = threading.Lock()
        self._active: set[str] = set()
        self._generation: Counter[str] = Counter()
        self._supervising: Counter[str] = Counter()
        self._threads: list[threading.Thread] = []

    @property
    def env_path(self) -> str:
        with self._lock:
            return self._env_path

    def set_env_path(self, env_path: str) -> None:
        """Configured PATH for the next spawn or stop command."""
        with self._lock:
            self._env_path = env_path

    # ---- queries ----

    def has_active_tunnels(self) -> bool:
        with self._lock:
            return bool(self._active)

    def is_active(self, key: str) -> bool:
        with self._lock:
            return key in self._active

    def active_keys(self) -> list[str]:
        with self._lock:
            return sorted(self._active)

    def is_supervised(self, key: str) -> bool:
        """True while a supervisor thread is still retrying `key`."""
        with self._lock:
            return self._supervising[key] > 0

    # ---- toggling ----

    def toggle(self, key: str, enable: bool) -> bool:
        """
        Turn a tunnel on or off. Returns True if any tunnel is active afterwards.

        Raises TunnelNotFound when enabling a key with no command definition.
        """
        if enable:
            if key not in self._registry:
                raise TunnelNotFound(key)
            with self._lock:
                self._active.add(key)
            self._start_supervisor(key)
        else:
            with self._lock:
                self._active.discard(key)
            self._run_stop_command(key)

        return self.has_active_tunnels()

    def _start_supervisor(self, key: str) -> None:
        with self._lock:
            self._generation[key] += 1
            generation = self._generation[key]
            self._supervising[key] += 1
            self._threads = [t for t in self._threads if t.is_alive()]
            t = threading.Thread(
                target=self._supervise,
                args=(key, generation),
                name=f"tunnel-{key}",
                daemon=True,
            )
            self._threads.append(t)
        t.start()

    def _should_continue(self, key: str, generation: int) -> bool:
        with self._lock:
            return key in self._active and self._generation[key] == generation

    def _supervise(self, key: str, generation: int) -> None:
        attempts = 0
        try:
            while attempts < self._max_attempts and self._should_continue(key, generation):
                attempts += 1

                # Re-read every attempt: the registry may have been reloaded.
                command = self._registry.get(key)
                if command is None:
                    logger.error("Tunnel '%s' no longer has a command definition; giving up", key)
                    return

                path = merge_path(self.env_path, os.environ.get("PATH"))
                logger.debug("Tunnel '%s' PATH=%s", key, path)
                logger.info(
                    "Spawning tunnel '%s': %s %s (attempt %d/%d)",
                    key,
                    command.command,
                    list(command.args),
                    attempts,
                    self._max_attempts,
                )

                try:
                    child = self._spawner.spawn(command.command, command.args, path=path)
                except SpawnFailed:
                    logger.exception("Failed to start tunnel '%s'", key)
                    if self._retry_delay and attempts < self._max_attempts:
                        self._sleep(self._retry_delay)
                    continue

                logger.info("Tunnel '%s' process started (pid=%s)", key, child.pid)
                code = child.wait()
                logger.info("Tunnel '%s' process exited with code %s", key, code)

            if attempts >= self._max_attempts and self._should_continue(key, generation):
                logger.warning(
                    "Tunnel '%s': giving up after %d attempts; toggle it off and on to retry",
                    key,
                    attempts,
                )
        finally:
            with self._lock:
                self._supervising[key] -= 1

    def _run_stop_command(self, key: str) -> None:
        command = self._registry.get(key)
        if command is None:
            logger.warning("No command definition for tunnel '%s'; nothing to stop", key)
            return

        logger.info("Stopping tunnel '%s': %s %s", key, command.kill_command, list(command.kill_args))
        try:
            code = self._spawner.run(command.kill_command, command.kill_args, path=self.env_path)
        except SpawnFailed:
            logger.exception("Failed to stop tunnel '%s'", key)
            return
        logger.debug("Stop command for tunnel '%s' exited with %s", key, code)

    # ---- lifecycle ----

    def restart_active_tunnels(self) -> list[str]:
        """
        Recycle every active tunnel (after wake from sleep).

        The old process may be wedged rather than dead: stop it, then start a
        fresh supervisor. The old supervisor sees a stale generation and exits
        once its child is gone.
        """
        keys = self.active_keys()
        if not keys:
            logger.info("No active tunnels to restart")
            return []

        for key in keys:
            logger.info("Restarting tunnel '%s'", key)
            with self._lock:
                # Invalidate the current supervisor before killing its child.
                self._generation[key] += 1
            self._run_stop_command(key)
            if self.is_active(key):
                self._start_supervisor(key)
        return keys

    def cleanup(self) -> None:
        """Stop every active tunnel and clear the active set. Safe to call twice."""
        with self._lock:
            keys = sorted(self._active)
            self._active.clear()

        for key in keys:
            logger.debug("Cleaning up tunnel: %s", key)
            self._run_stop_command(key)

        if keys:
            logger.info("All tunnels cleaned up (%d)", len(keys))

    def join_supervisors(self, timeout: float | None = None) -> bool:
        """Wait for supervisor threads to finish. Returns True if all finished."""
        with self._lock:
            threads = list(self._threads)
        deadline = None if timeout is None else time.monotonic() + timeout
        for t in threads:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            t.join(timeout=remaining)
        return not any(t.is_alive() for t in threads)

    @property
    def registry(self) -> TunnelCommandRegistry:
        return self._registry
