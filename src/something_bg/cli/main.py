# src/something_bg/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs either the console shell
(main thread) or waits headless until a signal arrives. Signal handlers only
set an Event; cleanup always runs on the main thread in `finally`.
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    stop_main = threading.Event()
    in_console = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()
        if in_console.is_set():
            # Break out of the blocking input() call.
            raise KeyboardInterrupt

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, _handle_signal)
        except (ValueError, OSError):
            logger.debug("Cannot install handler for signal %s", sig)

    try:
        if settings.console_enabled:
            in_console.set()
            try:
                run_console_loop(state, stop_main)
            finally:
                in_console.clear()
            stop_main.set()
        else:
            logger.info("Console disabled. Running in background. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        state.cleanup()
        state.scheduler.join(timeout=5.0)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
