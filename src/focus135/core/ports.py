# src/focus135/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage and notification delivery swappable and makes testing easier.
"""

from typing import TYPE_CHECKING, Awaitable, Protocol

if TYPE_CHECKING:
    from .models import DayMarkers, PlannerState


class Notifier(Protocol):
    """
    Host-side port: how the daily clock asks for a reminder to be shown.

    The core only checks `permission_granted()` before sending; permission prompts,
    rooms, formatting and delivery are the connector's business.
    """

    def permission_granted(self) -> bool: ...

    def send_text(self, *, text: str) -> Awaitable[None]: ...


class StateRepo(Protocol):
    # Startup: every key degrades to its default on its own.
    def load_state(self) -> PlannerState: ...

    # After every mutation.
    def save_state(self, state: PlannerState) -> None: ...

    # Day markers are persisted outside the main bundle.
    def save_markers(self, markers: DayMarkers) -> None: ...
