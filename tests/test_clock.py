# tests/test_clock.py

from __future__ import annotations

from datetime import datetime

import pytest

from focus135.core.clock import (
    REMINDER_MESSAGE,
    AdvanceStreak,
    ClearToday,
    SendReminder,
    evaluate_tick,
    parse_reset_time,
)
from focus135.core.models import DayMarkers, PlannerSettings, StreakState, TaskSize

from .conftest import make_task

DAY = "2025-03-10"
ACTIVE_TODAY = StreakState(count=4, last_active_day=DAY)


def _tasks():
    return [
        make_task("m1", TaskSize.MEDIUM, is_today=True),
        make_task("s1", TaskSize.SMALL, is_today=True),
        make_task("done", TaskSize.SMALL, completed=True),
        make_task("later", TaskSize.LARGE),
    ]


def test_reset_fires_once_inside_the_tolerance_window() -> None:
    settings = PlannerSettings(reset_time="23:00")
    markers = DayMarkers(last_reset_day="2025-03-09")

    first = evaluate_tick(datetime(2025, 3, 10, 23, 2), settings, ACTIVE_TODAY, markers, _tasks())
    clears = first.of_type(ClearToday)
    assert len(clears) == 1
    assert set(clears[0].task_ids) == {"m1", "s1"}
    assert first.markers.last_reset_day == DAY

    second = evaluate_tick(datetime(2025, 3, 10, 23, 4), settings, ACTIVE_TODAY, first.markers, _tasks())
    assert second.of_type(ClearToday) == []
    assert second.markers == first.markers


@pytest.mark.parametrize("minute", [0, 1, 2, 3, 4])
def test_reset_window_is_five_minutes(minute: int) -> None:
    out = evaluate_tick(
        datetime(2025, 3, 10, 23, minute),
        PlannerSettings(reset_time="23:00"),
        ACTIVE_TODAY,
        DayMarkers(),
        _tasks(),
    )
    assert out.of_type(ClearToday)


@pytest.mark.parametrize(("hour", "minute"), [(22, 59), (23, 5), (12, 0)])
def test_no_reset_outside_the_window(hour: int, minute: int) -> None:
    out = evaluate_tick(
        datetime(2025, 3, 10, hour, minute),
        PlannerSettings(reset_time="23:00"),
        ACTIVE_TODAY,
        DayMarkers(),
        _tasks(),
    )
    assert out.of_type(ClearToday) == []
    assert out.markers.last_reset_day is None


def test_reset_window_wrapping_midnight_counts_for_the_opening_day() -> None:
    settings = PlannerSettings(reset_time="23:58")
    streak = StreakState(count=0, last_active_day="2025-03-11")

    late = evaluate_tick(datetime(2025, 3, 10, 23, 59), settings, StreakState(0, DAY), DayMarkers(), _tasks())
    assert late.markers.last_reset_day == DAY

    after_midnight = evaluate_tick(datetime(2025, 3, 11, 0, 1), settings, streak, late.markers, _tasks())
    assert after_midnight.of_type(ClearToday) == []


def test_reminder_fires_once_before_reset_when_work_is_pending() -> None:
    settings = PlannerSettings(reset_time="23:00", enable_notify=True)

    first = evaluate_tick(datetime(2025, 3, 10, 22, 35), settings, ACTIVE_TODAY, DayMarkers(), _tasks())
    reminders = first.of_type(SendReminder)
    assert reminders == [SendReminder(text=REMINDER_MESSAGE, pending=2)]
    assert first.markers.last_notify_day == DAY

    second = evaluate_tick(datetime(2025, 3, 10, 22, 50), settings, ACTIVE_TODAY, first.markers, _tasks())
    assert second.of_type(SendReminder) == []


def test_reminder_window_ends_at_reset_time() -> None:
    settings = PlannerSettings(reset_time="23:00", enable_notify=True)
    early = evaluate_tick(datetime(2025, 3, 10, 22, 29), settings, ACTIVE_TODAY, DayMarkers(), _tasks())
    at_reset = evaluate_tick(datetime(2025, 3, 10, 23, 0), settings, ACTIVE_TODAY, DayMarkers(), _tasks())
    assert early.of_type(SendReminder) == []
    assert at_reset.of_type(SendReminder) == []


def test_reminder_window_wraps_across_midnight() -> None:
    settings = PlannerSettings(reset_time="00:10", enable_notify=True)
    out = evaluate_tick(datetime(2025, 3, 10, 23, 45), settings, ACTIVE_TODAY, DayMarkers(), _tasks())
    assert out.of_type(SendReminder)


def test_no_reminder_without_pending_work_or_when_disabled() -> None:
    idle = [make_task("later", TaskSize.LARGE), make_task("done", TaskSize.SMALL, completed=True)]
    on = PlannerSettings(reset_time="23:00", enable_notify=True)
    off = PlannerSettings(reset_time="23:00", enable_notify=False)

    nothing_pending = evaluate_tick(datetime(2025, 3, 10, 22, 40), on, ACTIVE_TODAY, DayMarkers(), idle)
    disabled = evaluate_tick(datetime(2025, 3, 10, 22, 40), off, ACTIVE_TODAY, DayMarkers(), _tasks())

    assert nothing_pending.of_type(SendReminder) == []
    assert nothing_pending.markers.last_notify_day is None
    assert disabled.of_type(SendReminder) == []


def test_malformed_reset_time_skips_tick_without_raising() -> None:
    markers = DayMarkers(last_reset_day="2025-03-09")
    out = evaluate_tick(
        datetime(2025, 3, 10, 23, 1),
        PlannerSettings(reset_time="late evening", enable_notify=True),
        ACTIVE_TODAY,
        markers,
        _tasks(),
    )
    assert out.effects == ()
    assert out.markers == markers


def test_rollover_advances_streak_after_exactly_one_day() -> None:
    out = evaluate_tick(
        datetime(2025, 3, 10, 8, 0),
        PlannerSettings(),
        StreakState(count=4, last_active_day="2025-03-09"),
        DayMarkers(),
        [],
    )
    assert out.of_type(AdvanceStreak) == [AdvanceStreak(count=5)]
    assert out.streak == StreakState(count=5, last_active_day=DAY)


def test_rollover_after_a_gap_moves_marker_only() -> None:
    out = evaluate_tick(
        datetime(2025, 3, 10, 8, 0),
        PlannerSettings(),
        StreakState(count=4, last_active_day="2025-03-05"),
        DayMarkers(),
        [],
    )
    assert out.of_type(AdvanceStreak) == []
    assert out.streak == StreakState(count=4, last_active_day=DAY)


@pytest.mark.parametrize(("raw", "minute"), [("23:00", 1380), ("0:05", 5), (" 07:30 ", 450)])
def test_parse_reset_time(raw: str, minute: int) -> None:
    assert parse_reset_time(raw) == minute


@pytest.mark.parametrize("raw", ["", "24:00", "12:60", "noon", "12-30"])
def test_parse_reset_time_rejects_garbage(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_reset_time(raw)
