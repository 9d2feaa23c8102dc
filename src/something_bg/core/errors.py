# src/something_bg/core/errors.py

from __future__ import annotations

"""
Error taxonomy.

Scheduling and persistence errors are recovered and logged where they happen.
Only manual actions (add task, run now, toggle) surface errors to the shell.
"""


class SomethingBgError(Exception):
    """Base class for all errors raised by something_bg."""


class InvalidSchedule(SomethingBgError):
    def __init__(self, expression: str, reason: str = "") -> None:
        self.expression = expression
        self.reason = reason
        msg = f"Invalid cron schedule '{expression}'"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class CronEvaluationError(SomethingBgError):
    """The expression parsed, but no next occurrence could be computed."""


class TaskNotFound(SomethingBgError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Task '{key}' not found")


class TunnelNotFound(SomethingBgError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Tunnel '{key}' not found")


class SpawnFailed(SomethingBgError):
    def __init__(self, program: str, cause: BaseException | None = None) -> None:
        self.program = program
        self.cause = cause
        msg = f"Failed to spawn '{program}'"
        if cause is not None:
            msg = f"{msg}: {cause}"
        super().__init__(msg)


class PersistenceFailed(SomethingBgError):
    """Task state file could not be read, parsed, serialized or written."""
