# tests/test_daily_clock.py

from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from focus135.core.clock import REMINDER_MESSAGE, run_daily_clock
from focus135.core.models import PlannerSettings, PlannerState, StreakState
from focus135.core.planner import Planner

from .conftest import make_project, make_task
from .fakes import FakeNotifier, FakeStateRepo

BEFORE_RESET = datetime(2025, 3, 10, 22, 40)


def _planner_with_pending_work() -> Planner:
    repo = FakeStateRepo(
        PlannerState(
            projects=(make_project("p1"),),
            tasks=(make_task("m1", is_today=True),),
            streak=StreakState(count=1, last_active_day="2025-03-10"),
            settings=PlannerSettings(reset_time="23:00", enable_notify=True),
        )
    )
    return Planner(repo, now_fn=lambda: BEFORE_RESET)


async def _run_briefly(planner: Planner, notifier: FakeNotifier) -> None:
    runner = asyncio.create_task(
        run_daily_clock(planner, notifier, interval_seconds=0.01, now_fn=lambda: BEFORE_RESET)
    )
    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner


@pytest.mark.asyncio
async def test_clock_sends_reminder_once_per_day() -> None:
    planner = _planner_with_pending_work()
    notifier = FakeNotifier()

    await _run_briefly(planner, notifier)

    assert notifier.sent == [REMINDER_MESSAGE]
    assert planner.state.markers.last_notify_day == "2025-03-10"


@pytest.mark.asyncio
async def test_clock_disables_reminders_without_permission() -> None:
    planner = _planner_with_pending_work()
    notifier = FakeNotifier(granted=False)

    await _run_briefly(planner, notifier)

    assert notifier.sent == []
    assert planner.state.settings.enable_notify is False


@pytest.mark.asyncio
async def test_clock_survives_failing_delivery() -> None:
    class FailingNotifier(FakeNotifier):
        async def send_text(self, *, text: str) -> None:
            raise RuntimeError("homeserver unreachable")

    planner = _planner_with_pending_work()
    await _run_briefly(planner, FailingNotifier())

    # The day's reminder is spent even though delivery failed.
    assert planner.state.markers.last_notify_day == "2025-03-10"


@pytest.mark.asyncio
async def test_startup_tick_leaves_the_reminder_to_the_clock() -> None:
    planner = _planner_with_pending_work()
    notifier = FakeNotifier()

    planner.tick()
    assert planner.state.markers.last_notify_day is None

    await _run_briefly(planner, notifier)

    assert notifier.sent == [REMINDER_MESSAGE]
