# tests/test_logging_setup.py

from __future__ import annotations

import logging

import pytest

from something_bg.logging_setup import _ConsoleNoiseFilter


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("something_bg.tasks.task_scheduler", logging.DEBUG, True),
        ("something_bg.tunnels.tunnel_manager", logging.WARNING, True),
        ("py.warnings", logging.WARNING, False),
        ("py.warnings", logging.ERROR, True),
        ("croniter", logging.INFO, False),
        ("croniter", logging.ERROR, True),
    ],
)
def test_console_filter(name: str, level: int, shown: bool) -> None:
    assert _ConsoleNoiseFilter().filter(_record(name, level)) is shown
