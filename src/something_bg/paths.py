# src/something_bg/paths.py

"""Platform-correct locations for config.toml and the task state file."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

APP_DIR_NAME = "something_bg"
CONFIG_FILE_NAME = "config.toml"
STATE_FILE_NAME = "task_state.json"


@dataclass(frozen=True, slots=True)
class AppPaths:
    config_path: Path
    state_path: Path


def _env_dir(name: str, fallback: Path) -> Path:
    raw = os.environ.get(name)
    if raw and raw.strip():
        return Path(raw).expanduser()
    return fallback


def default_paths(platform: str | None = None, home: Path | None = None) -> AppPaths:
    platform = platform or sys.platform
    home = home or Path.home()

    if platform == "darwin":
        # Keep the ~/.config layout used by the macOS build.
        base = home / ".config" / APP_DIR_NAME
        return AppPaths(config_path=base / CONFIG_FILE_NAME, state_path=base / STATE_FILE_NAME)

    if platform == "win32":
        roaming = _env_dir("APPDATA", home / "AppData" / "Roaming")
        local = _env_dir("LOCALAPPDATA", home / "AppData" / "Local")
        return AppPaths(
            config_path=roaming / APP_DIR_NAME / CONFIG_FILE_NAME,
            state_path=local / APP_DIR_NAME / STATE_FILE_NAME,
        )

    config_home = _env_dir("XDG_CONFIG_HOME", home / ".config")
    data_home = _env_dir("XDG_DATA_HOME", home / ".local" / "share")
    return AppPaths(
        config_path=config_home / APP_DIR_NAME / CONFIG_FILE_NAME,
        state_path=data_home / APP_DIR_NAME / STATE_FILE_NAME,
    )
