# tests/test_lifecycle.py

from __future__ import annotations

import pytest

from focus135.core.lifecycle import acknowledge_completion, complete_task, completion_event
from focus135.core.models import PlannerState, TaskSize

from .conftest import NOW, make_project, make_task


def _state(*tasks, archived: bool = False) -> PlannerState:
    return PlannerState(projects=(make_project("p1", archived=archived),), tasks=tuple(tasks))


def test_completing_the_last_task_emits_one_event() -> None:
    state = _state(
        make_task("m1", TaskSize.MEDIUM, completed=True),
        make_task("m2", TaskSize.MEDIUM),
    )

    tasks, event = complete_task(state, "m2", NOW)

    assert event is not None
    assert event.project_id == "p1"
    assert event.total_minutes == 60
    assert all(t.completed for t in tasks)

    # Repeating the completion neither changes tasks nor emits again.
    again_tasks, again = complete_task(PlannerState(projects=state.projects, tasks=tasks), "m2", NOW)
    assert again is None
    assert again_tasks is tasks


def test_no_event_while_work_remains() -> None:
    state = _state(make_task("m1"), make_task("m2"))
    tasks, event = complete_task(state, "m1", NOW)
    assert event is None
    done = next(t for t in tasks if t.id == "m1")
    assert done.completed and done.completed_at == NOW and not done.is_today


def test_completing_clears_today_flag() -> None:
    state = _state(make_task("m1", is_today=True), make_task("m2"))
    tasks, _ = complete_task(state, "m1", NOW)
    assert next(t for t in tasks if t.id == "m1").is_today is False


def test_archived_project_emits_nothing() -> None:
    state = _state(make_task("m1", completed=True), archived=True)
    assert completion_event(state, "p1") is None


def test_quick_bucket_and_missing_project_emit_nothing() -> None:
    quick = make_task("q1", TaskSize.QUICK)
    state = PlannerState(tasks=(quick,))
    _, event = complete_task(state, "q1", NOW)
    assert event is None
    assert completion_event(PlannerState(), "ghost") is None


def test_project_without_tasks_is_not_complete() -> None:
    assert completion_event(_state(), "p1") is None


def test_unknown_task_raises() -> None:
    with pytest.raises(KeyError):
        complete_task(_state(), "nope", NOW)


def test_acknowledge_archives_and_keeps_tasks() -> None:
    state = _state(make_task("m1", completed=True))
    projects = acknowledge_completion(state.projects, "p1")
    assert projects[0].archived is True
    assert acknowledge_completion(projects, "p1") == projects

    with pytest.raises(KeyError):
        acknowledge_completion(projects, "ghost")
