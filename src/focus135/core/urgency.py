# src/focus135/core/urgency.py

from __future__ import annotations

"""
Urgency scoring.

Urgency is the number of focus hours per day needed to finish a project's remaining
work before its deadline. The scorer knows nothing about archiving: keeping archived
projects out of ranked lists is the job of `rank_projects` (and of any other list
builder that calls `score` directly).
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import StrEnum

from .models import DEFAULT_SIZES, Project, SizeTable, Task

DAY_SECONDS = 86_400.0

# Floor for days left, so past-due and same-day deadlines stay finite.
MIN_DAYS_LEFT = 0.1


class UrgencyTier(StrEnum):
    CRITICAL = "critical"
    URGENT = "urgent"
    ELEVATED = "elevated"
    NORMAL = "normal"
    RELAXED = "relaxed"


# Presentation policy: (lower bound, tier), checked top-down.
TIER_THRESHOLDS: tuple[tuple[float, UrgencyTier], ...] = (
    (3.0, UrgencyTier.CRITICAL),
    (1.5, UrgencyTier.URGENT),
    (0.8, UrgencyTier.ELEVATED),
    (0.3, UrgencyTier.NORMAL),
)


def _project_tasks(project_id: str, tasks: Iterable[Task]) -> list[Task]:
    return [t for t in tasks if t.project_id == project_id and not t.is_quick]


def remaining_minutes(project: Project, tasks: Iterable[Task], sizes: SizeTable = DEFAULT_SIZES) -> int:
    return sum(sizes.minutes_for(t.size) for t in _project_tasks(project.id, tasks) if not t.completed)


def total_minutes(project: Project, tasks: Iterable[Task], sizes: SizeTable = DEFAULT_SIZES) -> int:
    """Planned duration of every task in the project, done or not."""
    return sum(sizes.minutes_for(t.size) for t in _project_tasks(project.id, tasks))


def days_left(deadline: date, now: datetime) -> float:
    """Days from `now` until the start of the deadline day (may be negative)."""
    deadline_dt = datetime.combine(deadline, time.min, tzinfo=now.tzinfo)
    return (deadline_dt - now).total_seconds() / DAY_SECONDS


def urgency_for(minutes: int, days: float) -> float:
    if minutes <= 0:
        return 0.0
    return (minutes / 60.0) / max(MIN_DAYS_LEFT, days)


def score(
    project: Project,
    tasks: Iterable[Task],
    now: datetime,
    sizes: SizeTable = DEFAULT_SIZES,
) -> float:
    return urgency_for(remaining_minutes(project, tasks, sizes), days_left(project.deadline, now))


def classify(urgency: float) -> UrgencyTier:
    for bound, tier in TIER_THRESHOLDS:
        if urgency >= bound:
            return tier
    return UrgencyTier.RELAXED


@dataclass(frozen=True, slots=True)
class ProjectStats:
    project: Project
    remaining_minutes: int
    open_tasks: int
    days_left: float
    urgency: float

    @property
    def tier(self) -> UrgencyTier:
        return classify(self.urgency)


def project_stats(
    project: Project,
    tasks: Sequence[Task],
    now: datetime,
    sizes: SizeTable = DEFAULT_SIZES,
) -> ProjectStats:
    open_tasks = [t for t in _project_tasks(project.id, tasks) if not t.completed]
    minutes = sum(sizes.minutes_for(t.size) for t in open_tasks)
    days = days_left(project.deadline, now)
    return ProjectStats(
        project=project,
        remaining_minutes=minutes,
        open_tasks=len(open_tasks),
        days_left=days,
        urgency=urgency_for(minutes, days),
    )


def rank_projects(
    projects: Iterable[Project],
    tasks: Sequence[Task],
    now: datetime,
    sizes: SizeTable = DEFAULT_SIZES,
) -> list[ProjectStats]:
    """Active projects, most urgent first. Archived projects are dropped here."""
    stats = [project_stats(p, tasks, now, sizes) for p in projects if not p.archived]
    stats.sort(key=lambda s: (-s.urgency, s.project.deadline, s.project.name))
    return stats


@dataclass(frozen=True, slots=True)
class CompletedHistory:
    tasks: list[Task]
    total_minutes: int


def completed_history(tasks: Iterable[Task], sizes: SizeTable = DEFAULT_SIZES) -> CompletedHistory:
    """Completed tasks (quick ones included), newest first."""
    done = [t for t in tasks if t.completed]
    done.sort(key=lambda t: t.completed_at or datetime.min, reverse=True)
    return CompletedHistory(tasks=done, total_minutes=sum(sizes.minutes_for(t.size) for t in done))


def format_duration(minutes: int) -> str:
    h, m = divmod(max(0, int(minutes)), 60)
    if h == 0:
        return f"{m}m"
    return f"{h}h {m}m" if m else f"{h}h"
