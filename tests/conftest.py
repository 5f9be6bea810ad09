# tests/conftest.py

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from focus135.core.models import QUICK_BUCKET, Project, Task, TaskSize
from focus135.core.planner import Planner
from focus135.core.state import AppState

from .fakes import FakeNotifier, FakeStateRepo

# Fixed "now" for deterministic tests: Monday 2025-03-10, 12:00 local time.
NOW = datetime(2025, 3, 10, 12, 0)


def make_task(
    tid: str,
    size: TaskSize = TaskSize.MEDIUM,
    *,
    project_id: str = "p1",
    is_today: bool = False,
    completed: bool = False,
) -> Task:
    if size is TaskSize.QUICK:
        project_id = QUICK_BUCKET
    return Task(
        id=tid,
        project_id=project_id,
        title=f"task {tid}",
        size=size,
        is_today=is_today,
        completed=completed,
        completed_at=NOW if completed else None,
    )


def make_project(pid: str = "p1", *, deadline: date = date(2025, 3, 11), archived: bool = False) -> Project:
    return Project(
        id=pid,
        name=f"project {pid}",
        goal="",
        deadline=deadline,
        created_at=datetime(2025, 3, 1, 9, 0),
        archived=archived,
    )


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and commands.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="focus135-test",
        data_dir=tmp_path,
        db_path=tmp_path / "planner.sqlite3",
        tick_seconds=60.0,
        notify_backend="console",
        console_enabled=False,
    )


@pytest.fixture()
def repo() -> FakeStateRepo:
    return FakeStateRepo()


@pytest.fixture()
def planner(repo: FakeStateRepo) -> Planner:
    return Planner(repo, now_fn=lambda: NOW)


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def state(settings: SimpleNamespace, planner: Planner, notifier: FakeNotifier) -> AppState:
    """AppState wired with an in-memory repo and a fake notifier."""
    return AppState(settings=settings, planner=planner, notifier=notifier)
