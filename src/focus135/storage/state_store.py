# src/focus135/storage/state_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from ..core.models import (
    ChecklistItem,
    DayMarkers,
    PlannerSettings,
    PlannerState,
    Project,
    StreakState,
    Task,
)
from ..core.slots import release_overflow

logger = logging.getLogger(__name__)

KEY_PROJECTS = "projects"
KEY_TASKS = "tasks"
KEY_STREAK = "streak"
KEY_LAST_ACTIVE = "lastActiveDay"
KEY_SETTINGS = "settings"
KEY_CHECKLIST = "checklist"
KEY_LAST_RESET = "lastResetDay"
KEY_LAST_NOTIFY = "lastNotifyDay"

_MISSING: Any = object()

T = TypeVar("T")


class StateStore:
    """
    SQLite key/value store for planner state.

    Every value is a JSON document under a fixed key (projects, tasks, streak, ...).
    Loading is per key: a missing or unreadable key falls back to its default and
    never prevents the other keys from loading.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "planner.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("StateStore ready db=%s", self._db_path)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def _write(self, items: dict[str, Any]) -> None:
        now = time.time()
        rows = [(key, json.dumps(value, ensure_ascii=False), now) for key, value in items.items()]
        conn = self._get_conn()
        try:
            conn.executemany(
                """
                INSERT INTO kv(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                rows,
            )
            conn.commit()
        finally:
            conn.close()

    def _read_all(self) -> dict[str, str]:
        conn = self._get_conn()
        try:
            cur = conn.execute("SELECT key, value FROM kv")
            return {str(row["key"]): str(row["value"]) for row in cur.fetchall()}
        finally:
            conn.close()

    @staticmethod
    def _decode(raw: dict[str, str], key: str) -> Any:
        if key not in raw:
            return _MISSING
        try:
            return json.loads(raw[key])
        except ValueError:
            logger.warning("State key %r is not valid JSON; using default", key)
            return _MISSING

    @staticmethod
    def _decode_list(value: Any, key: str, factory: Callable[[dict[str, Any]], T]) -> tuple[T, ...]:
        if value is _MISSING:
            return ()
        if not isinstance(value, list):
            logger.warning("State key %r is not a list; using default", key)
            return ()
        out: list[T] = []
        for i, item in enumerate(value):
            try:
                if not isinstance(item, dict):
                    raise ValueError("not an object")
                out.append(factory(item))
            except (TypeError, ValueError) as e:
                logger.warning("Skipping unreadable %s[%d]: %s", key, i, e)
        return tuple(out)

    @staticmethod
    def _decode_day(value: Any, key: str) -> str | None:
        if value is _MISSING or value is None:
            return None
        if not isinstance(value, str):
            logger.warning("State key %r is not a string; using default", key)
            return None
        return value

    # ---- public API ----

    def load_state(self) -> PlannerState:
        try:
            raw = self._read_all()
        except sqlite3.Error:
            logger.exception("Failed to read state db %s; starting empty", self._db_path)
            raw = {}

        projects = self._decode_list(self._decode(raw, KEY_PROJECTS), KEY_PROJECTS, Project.from_dict)
        tasks = release_overflow(self._decode_list(self._decode(raw, KEY_TASKS), KEY_TASKS, Task.from_dict))
        checklist = self._decode_list(self._decode(raw, KEY_CHECKLIST), KEY_CHECKLIST, ChecklistItem.from_dict)

        count_raw = self._decode(raw, KEY_STREAK)
        count = 0
        if count_raw is not _MISSING:
            try:
                count = max(0, int(count_raw))
            except (TypeError, ValueError):
                logger.warning("State key %r is not an integer; using 0", KEY_STREAK)

        settings = PlannerSettings()
        settings_raw = self._decode(raw, KEY_SETTINGS)
        if isinstance(settings_raw, dict):
            settings = PlannerSettings.from_dict(settings_raw)
        elif settings_raw is not _MISSING:
            logger.warning("State key %r is not an object; using defaults", KEY_SETTINGS)

        state = PlannerState(
            projects=projects,
            tasks=tasks,
            streak=StreakState(
                count=count,
                last_active_day=self._decode_day(self._decode(raw, KEY_LAST_ACTIVE), KEY_LAST_ACTIVE),
            ),
            settings=settings,
            markers=DayMarkers(
                last_reset_day=self._decode_day(self._decode(raw, KEY_LAST_RESET), KEY_LAST_RESET),
                last_notify_day=self._decode_day(self._decode(raw, KEY_LAST_NOTIFY), KEY_LAST_NOTIFY),
            ),
            checklist=checklist,
        )
        logger.info(
            "State loaded: projects=%d tasks=%d streak=%d checklist=%d",
            len(state.projects),
            len(state.tasks),
            state.streak.count,
            len(state.checklist),
        )
        return state

    def save_state(self, state: PlannerState) -> None:
        self._write(
            {
                KEY_PROJECTS: [p.to_dict() for p in state.projects],
                KEY_TASKS: [t.to_dict() for t in state.tasks],
                KEY_STREAK: state.streak.count,
                KEY_LAST_ACTIVE: state.streak.last_active_day,
                KEY_SETTINGS: state.settings.to_dict(),
                KEY_CHECKLIST: [c.to_dict() for c in state.checklist],
            }
        )
        logger.debug("State saved: projects=%d tasks=%d", len(state.projects), len(state.tasks))

    def save_markers(self, markers: DayMarkers) -> None:
        self._write(
            {
                KEY_LAST_RESET: markers.last_reset_day,
                KEY_LAST_NOTIFY: markers.last_notify_day,
            }
        )

    def put_raw(self, key: str, value: str) -> None:
        """Store a raw (possibly invalid) value. Used for repair and tests."""
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO kv(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, time.time()),
            )
            conn.commit()
        finally:
            conn.close()
