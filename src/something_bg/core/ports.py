# src/something_bg/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The scheduler and tunnel manager depend on these Protocols, not on subprocess.
"""

from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Protocol

# Returns a timezone-aware "now".
Clock = Callable[[], datetime]


class ChildProcess(Protocol):
    """A spawned process the caller may block on."""

    @property
    def pid(self) -> int: ...

    def wait(self) -> int: ...


class ProcessSpawner(Protocol):
    def spawn(self, program: str, args: Sequence[str], *, path: str) -> ChildProcess:
        """
        Start `program` without waiting for it.

        stdin/stdout/stderr go to the null device, PATH is set to `path`.
        Raises SpawnFailed if the OS refuses to create the process.
        """
        ...

    def run(self, program: str, args: Sequence[str], *, path: str | None = None) -> int:
        """
        Run `program` to completion and return its exit code (output discarded).

        Raises SpawnFailed if the OS refuses to create the process.
        """
        ...
