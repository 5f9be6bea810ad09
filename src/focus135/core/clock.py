# src/focus135/core/clock.py

from __future__ import annotations

"""
Daily clock.

A single recurring tick drives three independent, idempotent checks:
- day rollover (streak advance),
- the daily reset of today's unfinished tasks,
- the reminder shortly before the reset.

`evaluate_tick` is pure: (now, settings, streak, markers, tasks) -> effects + new
markers. Applying effects and persisting belongs to the Planner; delivering the
reminder belongs to a Notifier. `run_daily_clock` is the polling loop that ties them
together.

Idempotency comes from the day markers, not from locking: a window fires at most
once per occurrence day no matter how many ticks land inside it. The occurrence day
is the calendar day on which the window opened, which differs from today only when
a window wraps past midnight.
"""

import asyncio
import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from . import streak as streak_tracker
from .models import DayMarkers, PlannerSettings, StreakState, Task
from .ports import Notifier

if TYPE_CHECKING:
    from .planner import Planner

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
RESET_WINDOW_MINUTES = 5
NOTIFY_LEAD_MINUTES = 30

REMINDER_MESSAGE = "Your 1-3-5 day resets soon. Finish today's tasks or let them go."

_HHMM = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def parse_reset_time(raw: str) -> int:
    """'HH:MM' -> minute of day. Raises ValueError on anything else."""
    m = _HHMM.match(raw or "")
    if not m:
        raise ValueError(f"reset time must look like HH:MM, got {raw!r}")
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"reset time out of range: {raw!r}")
    return hour * 60 + minute


@dataclass(frozen=True, slots=True)
class AdvanceStreak:
    count: int


@dataclass(frozen=True, slots=True)
class ClearToday:
    task_ids: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class SendReminder:
    text: str
    pending: int


TickEffect = AdvanceStreak | ClearToday | SendReminder


@dataclass(frozen=True, slots=True)
class TickOutcome:
    streak: StreakState
    markers: DayMarkers
    effects: tuple[TickEffect, ...] = field(default=())

    def of_type(self, kind: type) -> list:
        return [e for e in self.effects if isinstance(e, kind)]


def _window_occurrence(now: datetime, start_minute: int, length: int) -> date | None:
    """
    Day on which the window containing `now` opened, or None if `now` is outside.

    The window is [start_minute, start_minute + length) and may wrap past midnight.
    """
    minute_of_day = now.hour * 60 + now.minute
    offset = (minute_of_day - start_minute) % MINUTES_PER_DAY
    if offset >= length:
        return None
    return (now - timedelta(minutes=offset)).date()


def evaluate_tick(
    now: datetime,
    settings: PlannerSettings,
    streak: StreakState,
    markers: DayMarkers,
    tasks: Iterable[Task],
) -> TickOutcome:
    effects: list[TickEffect] = []
    today = now.date()
    pending = [t for t in tasks if t.is_today and not t.completed]

    # 1) Day rollover.
    new_streak = streak
    if streak.last_active_day != today.isoformat():
        gap = streak_tracker.day_gap(streak.last_active_day, today)
        new_streak = streak_tracker.advance(streak, today)
        logger.info(
            "Day rollover %s -> %s (gap=%s streak=%s->%s)",
            streak.last_active_day,
            today.isoformat(),
            gap,
            streak.count,
            new_streak.count,
        )
        if new_streak.count != streak.count:
            effects.append(AdvanceStreak(count=new_streak.count))

    try:
        reset_minute = parse_reset_time(settings.reset_time)
    except ValueError as e:
        logger.warning("Reset/notify checks skipped this tick: %s", e)
        return TickOutcome(streak=new_streak, markers=markers, effects=tuple(effects))

    new_markers = markers

    # 2) Reset window.
    reset_day = _window_occurrence(now, reset_minute, RESET_WINDOW_MINUTES)
    if reset_day is not None and markers.last_reset_day != reset_day.isoformat():
        effects.append(ClearToday(task_ids=tuple(t.id for t in pending)))
        new_markers = DayMarkers(
            last_reset_day=reset_day.isoformat(),
            last_notify_day=new_markers.last_notify_day,
        )
        logger.info("Daily reset for %s: %d task(s) released", reset_day.isoformat(), len(pending))

    # 3) Notify window: the NOTIFY_LEAD_MINUTES ending at the reset time.
    if settings.enable_notify:
        notify_start = (reset_minute - NOTIFY_LEAD_MINUTES) % MINUTES_PER_DAY
        notify_day = _window_occurrence(now, notify_start, NOTIFY_LEAD_MINUTES)
        if notify_day is not None and markers.last_notify_day != notify_day.isoformat() and pending:
            effects.append(SendReminder(text=REMINDER_MESSAGE, pending=len(pending)))
            new_markers = DayMarkers(
                last_reset_day=new_markers.last_reset_day,
                last_notify_day=notify_day.isoformat(),
            )
            logger.info("Reminder due for %s: %d pending task(s)", notify_day.isoformat(), len(pending))

    return TickOutcome(streak=new_streak, markers=new_markers, effects=tuple(effects))


def _log_send_result(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Reminder delivery failed", exc_info=exc)


async def run_daily_clock(
    planner: Planner,
    notifier: Notifier,
    *,
    interval_seconds: float = 60.0,
    now_fn: Callable[[], datetime] = datetime.now,
) -> None:
    """
    Polling loop for the daily clock.

    Every interval_seconds:
    - planner.tick(now) evaluates and applies the tick (skipped if one is in flight)
    - reminders are handed to the notifier without waiting for delivery
    - a notifier without permission turns notifications off instead

    To stop the clock, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))
    in_flight: set[asyncio.Task] = set()

    while True:
        try:
            outcome = planner.tick(now_fn(), deliver_reminders=True)
        except Exception:
            logger.exception("Clock tick failed")
            outcome = None

        if outcome is not None:
            for reminder in outcome.of_type(SendReminder):
                try:
                    granted = bool(notifier.permission_granted())
                except Exception:
                    logger.exception("permission_granted failed; treating as denied")
                    granted = False

                if not granted:
                    logger.warning("Notification permission denied; disabling reminders")
                    try:
                        planner.set_notifications(False)
                    except Exception:
                        logger.exception("Failed to disable notifications")
                    continue

                send = asyncio.ensure_future(notifier.send_text(text=reminder.text))
                in_flight.add(send)
                send.add_done_callback(in_flight.discard)
                send.add_done_callback(_log_send_result)

        await asyncio.sleep(sleep_s)
