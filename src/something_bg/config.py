# src/something_bg/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Every value has a default; nothing is required at import time.
- Consumers accept an injected settings object (tests pass a SimpleNamespace).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .paths import default_paths

ENV_PREFIX = "SBG"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Local .env never overrides variables already set in the environment.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Files ----
    config_path: Path
    state_path: Path

    # ---- Shell ----
    console_enabled: bool

    # ---- Scheduler ----
    poll_interval_seconds: float

    # ---- Tunnels ----
    tunnel_max_attempts: int
    tunnel_retry_delay_seconds: float

    # ---- Wake detection ----
    wake_detection_enabled: bool
    wake_check_interval_seconds: float
    wake_threshold_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        paths = default_paths()

        app_name = _env(_k("APP_NAME"), "something_bg")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        config_path = _env_path(_k("CONFIG_PATH"), paths.config_path)
        state_path = _env_path(_k("STATE_PATH"), paths.state_path)
        data_dir = _env_path(_k("DATA_DIR"), state_path.parent)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            config_path=config_path,
            state_path=state_path,
            console_enabled=_env_bool(_k("CONSOLE_ENABLED"), True),
            poll_interval_seconds=_env_float(_k("POLL_INTERVAL_SECONDS"), 30.0),
            tunnel_max_attempts=_env_int(_k("TUNNEL_MAX_ATTEMPTS"), 5),
            tunnel_retry_delay_seconds=_env_float(_k("TUNNEL_RETRY_DELAY_SECONDS"), 1.0),
            wake_detection_enabled=_env_bool(_k("WAKE_DETECTION_ENABLED"), True),
            wake_check_interval_seconds=_env_float(_k("WAKE_CHECK_INTERVAL_SECONDS"), 10.0),
            wake_threshold_seconds=_env_float(_k("WAKE_THRESHOLD_SECONDS"), 30.0),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
