# src/something_bg/tasks/formatting.py

from __future__ import annotations

"""Human-readable text for schedules and run timestamps (console/status output)."""

from datetime import datetime

from croniter import croniter

from ..core.localtime import local_now


def cron_to_human_readable(pattern: str) -> str:
    pattern = (pattern or "").strip()
    if not croniter.is_valid(pattern):
        return pattern

    if pattern == "0 * * * *":
        return "Every hour"
    if pattern == "0 0 * * *":
        return "Every day at midnight"

    parts = pattern.split()
    if len(parts) == 5 and parts[0] == "0" and parts[1].isdigit() and parts[2:] == ["*", "*", "*"]:
        return f"Every day at {int(parts[1])}:00"

    return pattern


def ordinal(day: int) -> str:
    if day % 100 in (11, 12, 13):
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}" if n == 1 else f"{n} {unit}s"


def _relative(days: int) -> str:
    n = abs(days)
    if n < 14:
        span = _plural(n, "day")
    elif n < 60:
        span = _plural(n // 7, "week")
    elif n < 730:
        span = _plural(n // 30, "month")
    else:
        span = _plural(n // 365, "year")
    return f"in {span}" if days > 0 else f"{span} ago"


def format_relative_datetime(dt: datetime, now: datetime | None = None) -> str:
    """
    "today at 10:00", "tomorrow at 10:00", "on Friday at 10:00",
    "last Monday at 10:00", or "in 3 weeks (on Dec 21st at 10:00)".
    """
    if now is None:
        now = local_now()
    if dt.tzinfo is not None and now.tzinfo is not None:
        dt = dt.astimezone(now.tzinfo)

    diff_days = (dt.date() - now.date()).days
    time_part = dt.strftime("%H:%M")

    if diff_days == 0:
        return f"today at {time_part}"
    if diff_days == 1:
        return f"tomorrow at {time_part}"
    if diff_days == -1:
        return f"yesterday at {time_part}"
    if 2 <= diff_days <= 6:
        return f"on {dt.strftime('%A')} at {time_part}"
    if -6 <= diff_days <= -2:
        return f"last {dt.strftime('%A')} at {time_part}"

    if dt.year == now.year:
        date_str = f"{dt.strftime('%b')} {ordinal(dt.day)}"
    else:
        date_str = f"{dt.strftime('%b')} {ordinal(dt.day)}, {dt.year}"
    return f"{_relative(diff_days)} (on {date_str} at {time_part})"


def format_last_run(last_run: datetime | None, now: datetime | None = None) -> str:
    if last_run is None:
        return "Never"
    return format_relative_datetime(last_run, now)
