# src/focus135/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (state store, planner, notifier).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.notifiers import ConsoleNotifier, MatrixNotifier
from ..core.planner import Planner
from ..core.ports import Notifier
from ..core.state import AppState
from ..storage.state_store import StateStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def build_notifier(settings) -> Notifier:
    if getattr(settings, "notify_backend", "console") == "matrix":
        notifier = MatrixNotifier(settings)
        if notifier.permission_granted():
            return notifier
        logger.warning("Matrix reminders selected but not configured; falling back to console.")
    return ConsoleNotifier()


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    planner = Planner(StateStore(settings.db_path))
    notifier = build_notifier(settings)

    # Notifications may have been enabled under a backend that is gone now.
    if planner.state.settings.enable_notify and not notifier.permission_granted():
        planner.set_notifications(False)

    return AppState(settings=settings, planner=planner, notifier=notifier)
