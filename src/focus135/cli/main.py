# src/focus135/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the daily clock in a background thread,
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.clock_runner import start_clock_in_background
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logging.getLogger("nio").setLevel(max(console_level, logging.INFO))
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    # Catch up immediately (streak rollover, a reset missed while the app was closed).
    # A due reminder is left for the clock thread, which delivers it on its first tick.
    state.planner.tick()

    clock_runner = start_clock_in_background(state)

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError):
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running the daily clock only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        if clock_runner is not None:
            clock_runner.stop()
            clock_runner.join(timeout=10.0)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
