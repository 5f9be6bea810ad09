# src/focus135/connectors/clock_runner.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass

from ..core.clock import run_daily_clock
from ..core.state import AppState

logger = logging.getLogger(__name__)


async def _run_clock(state: AppState, stop_event: asyncio.Event) -> None:
    """
    Run the daily clock until stop_event is set.

    The Matrix notifier (if used) owns an AsyncClient bound to this loop, so it is
    closed here as well.
    """
    interval = float(getattr(state.settings, "tick_seconds", 60.0))
    clock_task = asyncio.create_task(run_daily_clock(state.planner, state.notifier, interval_seconds=interval))
    logger.info("Daily clock started (tick=%.0fs).", interval)

    try:
        await stop_event.wait()
    finally:
        clock_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await clock_task

        close = getattr(state.notifier, "close", None)
        if close is not None:
            try:
                await close()
            except Exception:
                logger.debug("Notifier close failed.", exc_info=True)

        logger.info("Daily clock stopped.")


@dataclass
class ClockBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal clock stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_clock_in_background(state: AppState) -> ClockBackgroundRunner | None:
    """
    Start the daily clock in a background thread with its own event loop,
    so the blocking console REPL can run on the main thread.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_clock(state, stop_event))
        except Exception:
            logger.exception("Daily clock thread crashed.")
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="focus135-clock", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Clock thread did not initialize properly.")
        return None

    return ClockBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
