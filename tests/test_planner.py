# tests/test_planner.py

from __future__ import annotations

from datetime import date, datetime

import pytest

from focus135.core.models import DayMarkers, PlannerSettings, PlannerState, StreakState, TaskSize
from focus135.core.planner import Planner
from focus135.core.slots import SlotFull

from .conftest import NOW, make_project, make_task
from .fakes import FakeStateRepo


def _planner(*tasks, **state_fields) -> tuple[Planner, FakeStateRepo]:
    repo = FakeStateRepo(PlannerState(projects=(make_project("p1"),), tasks=tuple(tasks), **state_fields))
    return Planner(repo, now_fn=lambda: NOW), repo


def test_add_project_and_task_persist(planner: Planner, repo: FakeStateRepo) -> None:
    project = planner.add_project("Thesis", "chapters 1-3", "2025-06-30")
    task = planner.add_task(project.id, "outline", "medium")

    assert project.deadline == date(2025, 6, 30)
    assert project.created_at == NOW
    assert task.project_name == "Thesis"
    assert repo.saved.tasks == (task,)
    assert repo.save_calls == 2


@pytest.mark.parametrize(
    ("name", "deadline"),
    [("", "2025-06-30"), ("   ", "2025-06-30"), ("Thesis", "30.06.2025")],
)
def test_add_project_validates_input(planner: Planner, name: str, deadline: str) -> None:
    with pytest.raises(ValueError):
        planner.add_project(name, "", deadline)
    assert planner.state.projects == ()


def test_add_task_rejects_quick_size_and_archived_project() -> None:
    planner, _ = _planner()
    with pytest.raises(ValueError):
        planner.add_task("p1", "x", TaskSize.QUICK)

    planner.acknowledge("p1")
    with pytest.raises(ValueError):
        planner.add_task("p1", "x", TaskSize.SMALL)

    with pytest.raises(KeyError):
        planner.add_task("ghost", "x", TaskSize.SMALL)


def test_quick_task_lands_in_quick_bucket(planner: Planner) -> None:
    task = planner.add_quick_task("call the bank")
    assert task.is_quick
    assert task.size is TaskSize.QUICK


def test_delete_project_cascades_to_its_tasks() -> None:
    planner, repo = _planner(
        make_task("m1"),
        make_task("m2", is_today=True),
        make_task("o1", project_id="other"),
    )

    removed = planner.delete_project("p1")

    assert removed == 2
    assert [t.id for t in planner.state.tasks] == ["o1"]
    assert planner.state.projects == ()
    assert repo.saved is planner.state


def test_rename_keeps_task_snapshots() -> None:
    planner, _ = _planner()
    task = planner.add_task("p1", "outline", TaskSize.SMALL)
    planner.rename_project("p1", "Renamed")
    assert planner.state.project("p1").name == "Renamed"
    assert planner.state.task(task.id).project_name == "project p1"


def test_mark_today_full_leaves_state_untouched() -> None:
    planner, repo = _planner(make_task("l1", TaskSize.LARGE, is_today=True), make_task("l2", TaskSize.LARGE))
    before = planner.state

    with pytest.raises(SlotFull):
        planner.mark_today("l2")

    assert planner.state is before
    assert repo.save_calls == 0


def test_complete_task_reports_project_completion() -> None:
    planner, _ = _planner(make_task("s1", TaskSize.SMALL, is_today=True))

    event = planner.complete_task("s1")

    assert event is not None and event.project_id == "p1"
    assert planner.state.today_tasks() == []
    assert planner.complete_task("s1") is None


def test_reorder_moves_named_tasks_to_front() -> None:
    planner, _ = _planner(make_task("a"), make_task("b"), make_task("c"), make_task("d"))
    planner.reorder_tasks(["c", "ghost", "a", "c"])
    assert [t.id for t in planner.state.tasks] == ["c", "a", "b", "d"]


def test_set_reset_time_validates() -> None:
    planner, _ = _planner()
    planner.set_reset_time(" 21:30 ")
    assert planner.state.settings.reset_time == "21:30"

    with pytest.raises(ValueError):
        planner.set_reset_time("25:00")
    assert planner.state.settings.reset_time == "21:30"


def test_enabling_notifications_without_permission_keeps_them_off(planner: Planner, repo: FakeStateRepo) -> None:
    assert planner.set_notifications(True, granted=False) is False
    assert planner.state.settings.enable_notify is False
    assert repo.save_calls == 0

    assert planner.set_notifications(True) is True
    assert planner.state.settings.enable_notify is True


def test_checklist_roundtrip(planner: Planner) -> None:
    item = planner.add_checklist_item("water plants")
    assert planner.toggle_checklist_item(item.id).done is True
    planner.remove_checklist_item(item.id)
    assert planner.state.checklist == ()
    with pytest.raises(KeyError):
        planner.remove_checklist_item(item.id)


def test_tick_applies_reset_and_persists_markers() -> None:
    planner, repo = _planner(
        make_task("m1", is_today=True),
        make_task("s1", TaskSize.SMALL, is_today=True),
        settings=PlannerSettings(reset_time="23:00"),
        streak=StreakState(count=2, last_active_day="2025-03-10"),
    )

    outcome = planner.tick(datetime(2025, 3, 10, 23, 2))

    assert outcome is not None
    assert planner.state.today_tasks() == []
    assert planner.state.markers == DayMarkers(last_reset_day="2025-03-10")
    assert repo.saved_markers == planner.state.markers
    assert repo.marker_calls == 1
    assert repo.save_calls == 1

    # Same window again: nothing changes, nothing is written.
    planner.tick(datetime(2025, 3, 10, 23, 4))
    assert repo.marker_calls == 1
    assert repo.save_calls == 1


def test_tick_advances_streak_on_next_day() -> None:
    planner, repo = _planner(streak=StreakState(count=2, last_active_day="2025-03-09"))
    planner.tick(datetime(2025, 3, 10, 8, 0))
    assert planner.state.streak == StreakState(count=3, last_active_day="2025-03-10")
    assert repo.saved.streak.count == 3


def test_tick_is_not_reentrant(planner: Planner) -> None:
    planner._tick_guard.acquire()
    try:
        assert planner.tick() is None
    finally:
        planner._tick_guard.release()
    assert planner.tick() is not None


def test_persistence_failure_keeps_memory_state() -> None:
    class BrokenRepo(FakeStateRepo):
        def save_state(self, state: PlannerState) -> None:
            raise OSError("disk full")

    planner = Planner(BrokenRepo(), now_fn=lambda: NOW)
    task = planner.add_quick_task("still here")
    assert planner.state.task(task.id) == task
