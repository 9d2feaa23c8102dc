# src/something_bg/core/process.py

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Sequence

from .errors import SpawnFailed

logger = logging.getLogger(__name__)


def merge_path(configured: str, existing: str | None) -> str:
    """Prepend the configured PATH to an existing one (or use it alone)."""
    if not existing:
        return configured
    if not configured:
        return existing
    return f"{configured}{os.pathsep}{existing}"


def _env_with_path(path: str | None) -> dict[str, str]:
    env = os.environ.copy()
    if path is not None:
        env["PATH"] = path
    return env


class SubprocessSpawner:
    """ProcessSpawner backed by the subprocess module."""

    def spawn(self, program: str, args: Sequence[str], *, path: str) -> subprocess.Popen:
        try:
            child = subprocess.Popen(
                [program, *args],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                env=_env_with_path(path),
                shell=False,
            )
        except (OSError, ValueError) as e:
            raise SpawnFailed(program, e) from e

        logger.debug("Spawned %s %s pid=%s", program, list(args), child.pid)
        return child

    def run(self, program: str, args: Sequence[str], *, path: str | None = None) -> int:
        try:
            done = subprocess.run(
                [program, *args],
                stdin=subprocess.DEVNULL,
                capture_output=True,
                env=_env_with_path(path),
                shell=False,
                check=False,
            )
        except (OSError, ValueError) as e:
            raise SpawnFailed(program, e) from e

        logger.debug("%s %s exited with %s", program, list(args), done.returncode)
        return done.returncode
