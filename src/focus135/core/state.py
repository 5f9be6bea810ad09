# src/focus135/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .planner import Planner
from .ports import Notifier


@dataclass
class AppState:
    # Store Settings on the state for easy access in commands and connectors.
    settings: Any

    planner: Planner
    notifier: Notifier

    @property
    def lock(self):
        # Connectors serialize command handling with the planner's own lock.
        return self.planner.lock
