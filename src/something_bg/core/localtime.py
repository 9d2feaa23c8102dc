# src/something_bg/core/localtime.py

from __future__ import annotations

"""
DST-aware local time.

Schedules are evaluated in the zone returned by local_zone(), never in a
fixed UTC offset, so a daily 06:00 run stays at 06:00 across DST changes.
"""

import logging
import os
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

LOCALTIME_FILE = Path("/etc/localtime")


def local_zone() -> tzinfo:
    """
    The system time zone with its DST rules.

    Order: $TZ (IANA name), /etc/localtime, then the current fixed offset.
    """
    name = os.environ.get("TZ", "").strip().lstrip(":")
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("TZ=%r is not an IANA zone name; ignoring it", name)

    try:
        with LOCALTIME_FILE.open("rb") as f:
            return ZoneInfo.from_file(f, key="localtime")
    except (OSError, ValueError):
        logger.debug("No usable %s", LOCALTIME_FILE)

    # No zone database (e.g. Windows without $TZ).
    return datetime.now().astimezone().tzinfo or timezone.utc


def local_now() -> datetime:
    return datetime.now(local_zone())


def to_local(dt: datetime) -> datetime:
    """Aware datetime in the local zone; naive input is taken as local wall time."""
    zone = local_zone()
    if dt.tzinfo is None:
        return dt.replace(tzinfo=zone)
    return dt.astimezone(zone)
