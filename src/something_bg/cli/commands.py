# src/something_bg/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..core.errors import SomethingBgError
from ..core.state import AppState
from ..tasks.formatting import format_last_run, format_relative_datetime

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console shell (/help, /toggle, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str, emit: CommandEmitter | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _indicator(state: AppState) -> str:
    return "ACTIVE" if state.tunnel_manager.has_active_tunnels() else "IDLE"


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    tm = state.tunnel_manager
    active = tm.active_keys()
    tasks = state.scheduler.get_all_tasks()
    return (
        "Status:\n"
        f"  Tunnels: {_indicator(state)} ({len(active)} of {len(tm.registry.keys())} on)\n"
        f"  Scheduled tasks: {len(tasks)}\n"
        f"  Scheduler: {'running' if state.scheduler.is_running else 'stopped'}\n"
        f"  Config: {state.paths.config_path}"
    )


def cmd_tunnels(state: AppState, args: list[str]) -> str:
    tm = state.tunnel_manager
    names = dict((key, cfg.name) for key, cfg in state.config.tunnels)
    keys = tm.registry.keys()
    if not keys:
        return "No tunnels configured."

    lines = ["Tunnels:"]
    for key in keys:
        mark = "[x]" if tm.is_active(key) else "[ ]"
        note = ""
        if tm.is_active(key) and not tm.is_supervised(key):
            note = " (gave up retrying; toggle off/on)"
        lines.append(f"  {mark} {key} - {names.get(key, key)}{note}")
    return "\n".join(lines)


def cmd_toggle(state: AppState, args: list[str]) -> str:
    """
    /toggle <key>        -> flip
    /toggle <key> on     -> enable
    /toggle <key> off    -> disable
    """
    if not args:
        return "Usage: /toggle <key> [on|off]"

    key = args[0]
    tm = state.tunnel_manager
    if len(args) > 1:
        arg = args[1].lower()
        if arg in ("on", "1", "true", "yes"):
            enable = True
        elif arg in ("off", "0", "false", "no"):
            enable = False
        else:
            return "Usage: /toggle <key> [on|off]"
    else:
        enable = not tm.is_active(key)

    try:
        any_active = tm.toggle(key, enable)
    except SomethingBgError as e:
        return str(e)

    return f"Tunnel '{key}' {'ON' if enable else 'OFF'}. Indicator: {'ACTIVE' if any_active else 'IDLE'}"


def cmd_tasks(state: AppState, args: list[str]) -> str:
    tasks = state.scheduler.get_all_tasks()
    if not tasks:
        return "No scheduled tasks."

    lines = ["Scheduled tasks:"]
    for t in tasks:
        nxt = format_relative_datetime(t.next_run) if t.next_run else "not scheduled"
        lines.append(
            f"  {t.key} - {t.name} [{t.schedule_description}]\n"
            f"      last run: {format_last_run(t.last_run)}; next run: {nxt}"
        )
    return "\n".join(lines)


def cmd_run(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /run <key>"
    key = args[0]
    try:
        state.scheduler.run_task_now(key)
    except SomethingBgError as e:
        logger.error("Task '%s' failed: %s", key, e)
        return str(e)

    snap = state.scheduler.get_task(key)
    nxt = format_relative_datetime(snap.next_run) if snap and snap.next_run else "not scheduled"
    return f"Task '{key}' started. Next run: {nxt}"


def cmd_missed(state: AppState, args: list[str]) -> str:
    ran = state.scheduler.check_and_run_missed_tasks()
    if not ran:
        return "No missed tasks."
    return "Ran missed tasks: " + ", ".join(ran)


def cmd_reload(state: AppState, args: list[str]) -> str:
    config = state.reload_config()
    return (
        f"Reloaded {state.paths.config_path}: "
        f"{len(config.tunnels)} tunnels, {len(config.schedules)} scheduled tasks "
        "(schedule changes apply after restart)."
    )


def cmd_wake(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        emit("Restarting active tunnels and checking for missed tasks...")
    state.handle_wake_from_sleep()
    return "Wake handling done."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show tunnel indicator, task count and config path.")
registry.register("tunnels", cmd_tunnels, help_text="List tunnels and whether they are on.", aliases=["t"])
registry.register("toggle", cmd_toggle, help_text="Turn a tunnel on/off: /toggle <key> [on|off].")
registry.register("tasks", cmd_tasks, help_text="List scheduled tasks with last/next run.")
registry.register("run", cmd_run, help_text="Run a scheduled task now: /run <key>.")
registry.register("missed", cmd_missed, help_text="Run tasks whose schedule was missed.")
registry.register("reload", cmd_reload, help_text="Re-read config.toml (tunnel commands and PATH).")
registry.register("wake", cmd_wake, help_text="Act as if the system just woke from sleep.")
