# src/something_bg/app_config.py

"""
Application config file (config.toml): tunnels, scheduled tasks, PATH override.

Tables are kept in file order. A malformed entry is logged and skipped so the
rest of the config still loads.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .tunnels.tunnel_manager import TunnelCommand

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TunnelConfig:
    name: str
    command: str
    args: list[str]
    kill_command: str
    kill_args: list[str]
    separator_after: bool = False
    group_header: str | None = None
    group_icon: str | None = None


@dataclass(frozen=True, slots=True)
class ScheduledTaskConfig:
    name: str
    command: str
    args: list[str]
    cron_schedule: str
    separator_after: bool = False
    group_header: str | None = None
    group_icon: str | None = None

    def display_meta(self) -> dict[str, Any]:
        return {
            "separator_after": self.separator_after,
            "group_header": self.group_header,
            "group_icon": self.group_icon,
        }


DEFAULT_CONFIG_TOML = """\
# something_bg configuration
#
# path = "/opt/homebrew/bin:/usr/local/bin:/usr/bin:/bin"

[tunnels.example-ssh]
name = "Example SSH Tunnel"
command = "ssh"
args = ["-N", "-L", "5432:localhost:5432", "user@example.com"]
kill_command = "pkill"
kill_args = ["-f", "user@example.com"]

[tunnels.k8s-example]
name = "K8s Port Forward"
command = "kubectl"
args = ["port-forward", "svc/my-service", "8080:8080", "-n", "default"]
kill_command = "pkill"
kill_args = ["-f", "svc/my-service"]

[tunnels.colima]
name = "Colima Docker"
command = "colima"
args = ["start"]
kill_command = "colima"
kill_args = ["stop"]

[schedules.daily-backup]
name = "Daily Backup"
command = "echo"
args = ["Running daily backup..."]
cron_schedule = "0 6 * * *"
group_header = "Scheduled Tasks"
group_icon = "sf:clock.fill"
"""


def _str(entry: dict[str, Any], name: str) -> str:
    v = entry.get(name)
    if not isinstance(v, str) or not v.strip():
        raise ValueError(f"'{name}' must be a non-empty string")
    return v


def _str_list(entry: dict[str, Any], name: str) -> list[str]:
    v = entry.get(name, [])
    if not isinstance(v, list) or not all(isinstance(x, str) for x in v):
        raise ValueError(f"'{name}' must be a list of strings")
    return list(v)


def _opt_str(entry: dict[str, Any], name: str) -> str | None:
    v = entry.get(name)
    return v if isinstance(v, str) else None


def _tunnel_from_toml(entry: dict[str, Any]) -> TunnelConfig:
    return TunnelConfig(
        name=_str(entry, "name"),
        command=_str(entry, "command"),
        args=_str_list(entry, "args"),
        kill_command=_str(entry, "kill_command"),
        kill_args=_str_list(entry, "kill_args"),
        separator_after=bool(entry.get("separator_after", False)),
        group_header=_opt_str(entry, "group_header"),
        group_icon=_opt_str(entry, "group_icon"),
    )


def _schedule_from_toml(entry: dict[str, Any]) -> ScheduledTaskConfig:
    return ScheduledTaskConfig(
        name=_str(entry, "name"),
        command=_str(entry, "command"),
        args=_str_list(entry, "args"),
        cron_schedule=_str(entry, "cron_schedule"),
        separator_after=bool(entry.get("separator_after", False)),
        group_header=_opt_str(entry, "group_header"),
        group_icon=_opt_str(entry, "group_icon"),
    )


@dataclass(slots=True)
class AppConfig:
    tunnels: list[tuple[str, TunnelConfig]] = field(default_factory=list)
    schedules: list[tuple[str, ScheduledTaskConfig]] = field(default_factory=list)
    path: str | None = None

    @staticmethod
    def from_toml(text: str) -> AppConfig:
        """Parse config text. Raises tomllib.TOMLDecodeError on invalid TOML."""
        data = tomllib.loads(text)

        path = data.get("path")
        cfg = AppConfig(path=path if isinstance(path, str) and path.strip() else None)

        tunnels = data.get("tunnels", {})
        if isinstance(tunnels, dict):
            for key, entry in tunnels.items():
                try:
                    if not isinstance(entry, dict):
                        raise ValueError("entry must be a table")
                    cfg.tunnels.append((key, _tunnel_from_toml(entry)))
                except ValueError as e:
                    logger.error("Skipping tunnel '%s': %s", key, e)

        schedules = data.get("schedules", {})
        if isinstance(schedules, dict):
            for key, entry in schedules.items():
                try:
                    if not isinstance(entry, dict):
                        raise ValueError("entry must be a table")
                    cfg.schedules.append((key, _schedule_from_toml(entry)))
                except ValueError as e:
                    logger.error("Skipping scheduled task '%s': %s", key, e)

        return cfg

    @staticmethod
    def default() -> AppConfig:
        return AppConfig.from_toml(DEFAULT_CONFIG_TOML)

    @staticmethod
    def load(config_path: str | Path) -> AppConfig:
        """
        Load config from disk.

        Missing file: write and return the default config.
        Unreadable or invalid file: log and return the default (file untouched).
        """
        config_path = Path(config_path)

        if not config_path.exists():
            logger.info("Config file not found at %s, creating default config", config_path)
            try:
                config_path.parent.mkdir(parents=True, exist_ok=True)
                config_path.write_text(DEFAULT_CONFIG_TOML, "utf-8")
            except OSError:
                logger.exception("Failed to write default config to %s", config_path)
            return AppConfig.default()

        logger.debug("Loading config from %s", config_path)
        try:
            cfg = AppConfig.from_toml(config_path.read_text("utf-8"))
        except (OSError, tomllib.TOMLDecodeError, UnicodeDecodeError):
            logger.exception("Failed to load configuration from %s; using defaults", config_path)
            return AppConfig.default()

        logger.info(
            "Loaded %d tunnel and %d schedule configurations from %s",
            len(cfg.tunnels),
            len(cfg.schedules),
            config_path,
        )
        return cfg

    def to_tunnel_commands(self) -> dict[str, TunnelCommand]:
        return {
            key: TunnelCommand(
                command=t.command,
                args=tuple(t.args),
                kill_command=t.kill_command,
                kill_args=tuple(t.kill_args),
            )
            for key, t in self.tunnels
        }

    def get_path(self) -> str:
        """Configured PATH, or the process PATH."""
        if self.path:
            return self.path
        return os.environ.get("PATH", "")
