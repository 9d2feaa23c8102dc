# src/something_bg/tasks/cron.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from croniter import CroniterBadCronError, CroniterBadDateError, croniter

from ..core.errors import CronEvaluationError, InvalidSchedule

@dataclass(slots=True, frozen=True)
class CronSchedule:
    """
    Compiled cron expression.

    Standard 5-field syntax (minute hour day month day_of_week), evaluated in
    the timezone of the reference instant.
    """

    expression: str

    @classmethod
    def parse(cls, expression: str) -> CronSchedule:
        expr = (expression or "").strip()
        if not expr:
            raise InvalidSchedule(expression, "empty expression")
        try:
            croniter(expr)
        except (CroniterBadCronError, ValueError, KeyError) as e:
            raise InvalidSchedule(expression, str(e)) from e
        return cls(expression=expr)

    def next_after(self, reference: datetime) -> datetime:
        """Earliest matching instant strictly after `reference`."""
        try:
            nxt = croniter(self.expression, reference).get_next(datetime)
        except (CroniterBadDateError, CroniterBadCronError, ValueError) as e:
            raise CronEvaluationError(
                f"No next occurrence for '{self.expression}' after {reference.isoformat()}: {e}"
            ) from e
        if nxt <= reference:
            raise CronEvaluationError(
                f"'{self.expression}' produced {nxt.isoformat()} which is not after {reference.isoformat()}"
            )
        return nxt
