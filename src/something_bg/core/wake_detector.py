# src/something_bg/core/wake_detector.py

from __future__ import annotations

"""
Wake-from-sleep detection without OS notification APIs.

A background thread wakes every `check_interval` seconds. While the machine
is suspended the thread does not run, so after resume the wall clock has
moved much further than one interval. A jump larger than `threshold` is
reported as a wake.
"""

import logging
import threading
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class WakeDetector:
    def __init__(
        self,
        on_wake: Callable[[], object],
        *,
        check_interval: float = 10.0,
        threshold: float = 30.0,
        time_fn: Callable[[], float] = time.time,
    ) -> None:
        self._on_wake = on_wake
        self._interval = max(0.1, float(check_interval))
        self._threshold = max(0.0, float(threshold))
        self._time = time_fn
        self._last = self._time()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def check(self) -> bool:
        """Compare against the previous check; fire the callback on a jump."""
        now = self._time()
        elapsed = now - self._last
        self._last = now

        if elapsed <= self._interval + self._threshold:
            return False

        logger.info("System woke from sleep (clock jumped %.0fs)", elapsed)
        try:
            self._on_wake()
        except Exception:
            logger.exception("Wake handler failed")
        return True

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._last = self._time()
        self._thread = threading.Thread(target=self._run, name="wake-detector", daemon=True)
        self._thread.start()
        logger.debug("Wake detector started (interval=%.1fs threshold=%.1fs)", self._interval, self._threshold)

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            self.check()

    def stop(self) -> None:
        self._stop_event.set()
