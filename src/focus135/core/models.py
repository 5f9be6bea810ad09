# src/focus135/core/models.py

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from types import MappingProxyType
from typing import Any

# Tasks without a project live in this bucket (the quick list).
QUICK_BUCKET = "__quick__"


def new_id() -> str:
    return uuid.uuid4().hex[:12]


class TaskSize(StrEnum):
    LARGE = "large"
    MEDIUM = "medium"
    SMALL = "small"
    QUICK = "quick"

    @classmethod
    def from_raw(cls, raw: str | None) -> TaskSize:
        """
        Parse a stored size.

        Older exports call the large size "big"; both spellings are accepted.
        Unknown values raise ValueError (the caller decides whether to skip the row).
        """
        s = (raw or "").strip().lower()
        if s == "big":
            return cls.LARGE
        return cls(s)

    @property
    def slotted(self) -> bool:
        return self is not TaskSize.QUICK


@dataclass(frozen=True, slots=True)
class SizeTable:
    """
    Per-size capacity and planned duration.

    Sizes missing from `capacity` are outside slot accounting; sizes missing from
    `minutes` weigh nothing in urgency and duration sums.
    """

    capacity: Mapping[TaskSize, int]
    minutes: Mapping[TaskSize, int]

    def capacity_for(self, size: TaskSize) -> int | None:
        return self.capacity.get(size)

    def minutes_for(self, size: TaskSize) -> int:
        return int(self.minutes.get(size, 0))

    @property
    def total_slots(self) -> int:
        return sum(self.capacity.values())


DEFAULT_SIZES = SizeTable(
    capacity=MappingProxyType({TaskSize.LARGE: 1, TaskSize.MEDIUM: 3, TaskSize.SMALL: 5}),
    minutes=MappingProxyType({TaskSize.LARGE: 90, TaskSize.MEDIUM: 30, TaskSize.SMALL: 10}),
)


_TRUE_STRINGS = {"1", "true", "yes", "y", "on"}


def _parse_bool(raw: Any, default: bool = False) -> bool:
    if raw is None:
        return default
    if isinstance(raw, str):
        return raw.strip().lower() in _TRUE_STRINGS
    return bool(raw)


def _parse_dt(raw: Any) -> datetime | None:
    """
    Parse a stored timestamp into naive local time.

    Exports from other clients carry UTC offsets ("...T10:00:00.000Z"); locally
    recorded times are naive. Everything is kept naive so timestamps stay comparable.
    """
    if raw is None or raw == "":
        return None
    dt = raw if isinstance(raw, datetime) else datetime.fromisoformat(str(raw))
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def _parse_date(raw: Any) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    s = str(raw or "").strip()
    # Accept full timestamps too ("2025-03-01T00:00:00.000Z").
    return date.fromisoformat(s[:10])


@dataclass(frozen=True, slots=True)
class Project:
    id: str
    name: str
    goal: str
    deadline: date
    created_at: datetime
    archived: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "goal": self.goal,
            "deadline": self.deadline.isoformat(),
            "createdAt": self.created_at.isoformat(),
            "archived": self.archived,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Project:
        pid = str(raw.get("id") or "").strip()
        if not pid:
            raise ValueError("project id is required")
        return cls(
            id=pid,
            name=str(raw.get("name") or ""),
            goal=str(raw.get("goal") or ""),
            deadline=_parse_date(raw.get("deadline")),
            created_at=_parse_dt(raw.get("createdAt")) or datetime.now(),
            archived=_parse_bool(raw.get("archived")),
        )


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    project_id: str
    title: str
    size: TaskSize
    completed: bool = False
    is_today: bool = False
    completed_at: datetime | None = None

    # Snapshot of the project name at creation time. Display fallback only:
    # membership is always `project_id`.
    project_name: str = ""

    @property
    def is_quick(self) -> bool:
        return self.project_id == QUICK_BUCKET or self.size is TaskSize.QUICK

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "title": self.title,
            "size": self.size.value,
            "completed": self.completed,
            "isToday": self.is_today,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "projectName": self.project_name,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Task:
        tid = str(raw.get("id") or "").strip()
        if not tid:
            raise ValueError("task id is required")
        completed = _parse_bool(raw.get("completed"))
        return cls(
            id=tid,
            project_id=str(raw.get("projectId") or QUICK_BUCKET),
            title=str(raw.get("title") or ""),
            size=TaskSize.from_raw(raw.get("size")),
            completed=completed,
            # A completed task is never on today's list, whatever the payload says.
            is_today=_parse_bool(raw.get("isToday")) and not completed,
            completed_at=_parse_dt(raw.get("completedAt")),
            project_name=str(raw.get("projectName") or ""),
        )


@dataclass(frozen=True, slots=True)
class PlannerSettings:
    reset_time: str = "23:00"
    enable_notify: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"resetTime": self.reset_time, "enableNotify": self.enable_notify}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> PlannerSettings:
        # The reset time is kept verbatim; the clock validates it on every tick.
        return cls(
            reset_time=str(raw.get("resetTime") or "23:00"),
            enable_notify=_parse_bool(raw.get("enableNotify")),
        )


@dataclass(frozen=True, slots=True)
class StreakState:
    count: int = 0
    last_active_day: str | None = None


@dataclass(frozen=True, slots=True)
class DayMarkers:
    last_reset_day: str | None = None
    last_notify_day: str | None = None


@dataclass(frozen=True, slots=True)
class ChecklistItem:
    id: str
    title: str
    done: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "done": self.done}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> ChecklistItem:
        cid = str(raw.get("id") or "").strip()
        if not cid:
            raise ValueError("checklist item id is required")
        return cls(id=cid, title=str(raw.get("title") or ""), done=_parse_bool(raw.get("done")))


@dataclass(frozen=True, slots=True)
class PlannerState:
    """
    One consistent snapshot of everything the planner owns.

    Snapshots are never mutated; every change produces a new PlannerState.
    """

    projects: tuple[Project, ...] = ()
    tasks: tuple[Task, ...] = ()
    streak: StreakState = field(default_factory=StreakState)
    settings: PlannerSettings = field(default_factory=PlannerSettings)
    markers: DayMarkers = field(default_factory=DayMarkers)
    checklist: tuple[ChecklistItem, ...] = ()

    def project(self, project_id: str) -> Project | None:
        for p in self.projects:
            if p.id == project_id:
                return p
        return None

    def task(self, task_id: str) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def today_tasks(self) -> list[Task]:
        return [t for t in self.tasks if t.is_today and not t.completed]


def display_project_name(task: Task, projects: tuple[Project, ...] | list[Project]) -> str:
    """
    Name to show next to a task.

    Prefers the live project; falls back to the snapshot stored on the task, which
    may be stale after a rename or a deletion.
    """
    if task.project_id == QUICK_BUCKET:
        return "quick"
    for p in projects:
        if p.id == task.project_id:
            return p.name
    return task.project_name or "(deleted project)"
