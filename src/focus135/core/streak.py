# src/focus135/core/streak.py

from __future__ import annotations

import logging
from datetime import date, timedelta

from .models import StreakState

logger = logging.getLogger(__name__)


def parse_day(raw: str | None) -> date | None:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        logger.warning("Ignoring malformed day marker %r", raw)
        return None


def day_gap(previous: str | None, today: date) -> int | None:
    """Whole days from `previous` to `today`, or None when there is no usable marker."""
    prev = parse_day(previous)
    if prev is None:
        return None
    return (today - prev).days


def advance(streak: StreakState, today: date) -> StreakState:
    """
    Move the last-active marker to `today`.

    The count grows by one only when the previous active day was exactly yesterday.
    Any other gap (never set, same day, several days, a marker in the future) leaves
    the count as it is: a missed day does not reset the streak to zero.
    """
    today_s = today.isoformat()
    if streak.last_active_day == today_s:
        return streak

    count = streak.count
    if streak.last_active_day == (today - timedelta(days=1)).isoformat():
        count += 1
    else:
        logger.debug("Streak not advanced: last_active=%s today=%s", streak.last_active_day, today_s)

    return StreakState(count=count, last_active_day=today_s)
