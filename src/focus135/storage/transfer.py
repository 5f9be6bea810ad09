# src/focus135/storage/transfer.py

from __future__ import annotations

"""
Export/import envelope.

The envelope is a flat JSON object:
  {"version", "exportedAt", "projects", "tasks", "streak", "settings", "checklist"}

Import is all-or-nothing: either the whole payload parses into an ImportedBundle,
or one of the ImportRejected errors is raised and the caller keeps its state.
"""

import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from ..core.models import DEFAULT_SIZES, ChecklistItem, PlannerSettings, PlannerState, Project, SizeTable, Task
from ..core.slots import release_overflow

logger = logging.getLogger(__name__)

ENVELOPE_VERSION = 1
REQUIRED_KEYS = ("projects", "tasks")

T = TypeVar("T")


class ImportRejected(ValueError):
    """Base class: the payload was not accepted and nothing was changed."""


class ImportParseError(ImportRejected):
    """The text is not JSON, not an object, or holds entries that cannot be read."""


class ImportMissingKeys(ImportRejected):
    def __init__(self, missing: Sequence[str]) -> None:
        super().__init__(f"import is missing required key(s): {', '.join(missing)}")
        self.missing = tuple(missing)


@dataclass(frozen=True, slots=True)
class ImportedBundle:
    projects: tuple[Project, ...]
    tasks: tuple[Task, ...]
    streak: int | None = None
    settings: PlannerSettings | None = None
    checklist: tuple[ChecklistItem, ...] | None = None


def export_envelope(state: PlannerState, *, now: datetime | None = None) -> str:
    payload: dict[str, Any] = {
        "version": ENVELOPE_VERSION,
        "exportedAt": (now or datetime.now()).isoformat(timespec="seconds"),
        "projects": [p.to_dict() for p in state.projects],
        "tasks": [t.to_dict() for t in state.tasks],
        "streak": state.streak.count,
        "settings": state.settings.to_dict(),
        "checklist": [c.to_dict() for c in state.checklist],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _parse_list(data: dict[str, Any], key: str, factory: Callable[[dict[str, Any]], T]) -> tuple[T, ...]:
    raw = data.get(key)
    if not isinstance(raw, list):
        raise ImportParseError(f"{key!r} must be a list")
    out: list[T] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ImportParseError(f"{key}[{i}] must be an object")
        try:
            out.append(factory(item))
        except (TypeError, ValueError) as e:
            raise ImportParseError(f"{key}[{i}] is invalid: {e}") from e
    return tuple(out)


def parse_envelope(text: str, sizes: SizeTable = DEFAULT_SIZES) -> ImportedBundle:
    """
    Parse an exported blob. Raises ImportParseError or ImportMissingKeys.

    Today-flags beyond the day's capacity are released in payload order.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ImportParseError(f"not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ImportParseError("top level must be a JSON object")

    missing = [k for k in REQUIRED_KEYS if k not in data]
    if missing:
        raise ImportMissingKeys(missing)

    projects = _parse_list(data, "projects", Project.from_dict)
    tasks = release_overflow(_parse_list(data, "tasks", Task.from_dict), sizes)

    streak: int | None = None
    if data.get("streak") is not None:
        try:
            streak = max(0, int(data["streak"]))
        except (TypeError, ValueError) as e:
            raise ImportParseError(f"'streak' must be an integer: {e}") from e

    settings: PlannerSettings | None = None
    if data.get("settings") is not None:
        if not isinstance(data["settings"], dict):
            raise ImportParseError("'settings' must be an object")
        settings = PlannerSettings.from_dict(data["settings"])

    checklist: tuple[ChecklistItem, ...] | None = None
    if data.get("checklist") is not None:
        checklist = _parse_list(data, "checklist", ChecklistItem.from_dict)

    logger.debug(
        "Parsed import: projects=%d tasks=%d checklist=%s",
        len(projects),
        len(tasks),
        None if checklist is None else len(checklist),
    )
    return ImportedBundle(
        projects=projects,
        tasks=tasks,
        streak=streak,
        settings=settings,
        checklist=checklist,
    )
