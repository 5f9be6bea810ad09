# src/focus135/core/lifecycle.py

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from .models import DEFAULT_SIZES, QUICK_BUCKET, PlannerState, Project, SizeTable, Task
from .urgency import total_minutes

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProjectCompleted:
    """Every task of the project is done; the user should acknowledge it."""

    project_id: str
    name: str
    total_minutes: int


def completion_event(
    state: PlannerState,
    project_id: str,
    sizes: SizeTable = DEFAULT_SIZES,
) -> ProjectCompleted | None:
    """
    Check whether `project_id` has just become complete.

    Requires an existing, non-archived project with at least one task and no
    incomplete tasks left. Quick-list tasks never belong to a project.
    """
    if project_id == QUICK_BUCKET:
        return None

    project = state.project(project_id)
    if project is None or project.archived:
        return None

    own = [t for t in state.tasks if t.project_id == project_id and not t.is_quick]
    if not own or any(not t.completed for t in own):
        return None

    return ProjectCompleted(
        project_id=project.id,
        name=project.name,
        total_minutes=total_minutes(project, own, sizes),
    )


def complete_task(
    state: PlannerState,
    task_id: str,
    now: datetime,
    sizes: SizeTable = DEFAULT_SIZES,
) -> tuple[tuple[Task, ...], ProjectCompleted | None]:
    """
    Mark a task complete and report whether that finished its project.

    Returns the new task tuple and the event (or None). Completing an already
    completed task changes nothing and emits nothing. Raises KeyError for unknown ids.
    """
    task = state.task(task_id)
    if task is None:
        raise KeyError(task_id)
    if task.completed:
        return state.tasks, None

    done = replace(task, completed=True, is_today=False, completed_at=now)
    tasks = tuple(done if t.id == task_id else t for t in state.tasks)
    logger.info("Task %s completed (size=%s project=%s)", task_id, task.size.value, task.project_id)

    event = completion_event(replace(state, tasks=tasks), task.project_id, sizes)
    if event is not None:
        logger.info("Project %s completed (%s min planned)", event.project_id, event.total_minutes)
    return tasks, event


def acknowledge_completion(projects: tuple[Project, ...], project_id: str) -> tuple[Project, ...]:
    """Archive the project. Its tasks and their history stay untouched."""
    found = False
    out: list[Project] = []
    for p in projects:
        if p.id == project_id:
            found = True
            out.append(p if p.archived else replace(p, archived=True))
        else:
            out.append(p)
    if not found:
        raise KeyError(project_id)
    return tuple(out)
