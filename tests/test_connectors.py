# tests/test_connectors.py

from __future__ import annotations

import logging
from types import SimpleNamespace

import pytest

from focus135.cli.bootstrap import build_notifier, create_initial_state
from focus135.connectors.notifiers import ConsoleNotifier, MatrixNotifier
from focus135.logging_setup import _ConsoleNoiseFilter


def _matrix_settings(**overrides) -> SimpleNamespace:
    values = dict(
        notify_backend="matrix",
        matrix_homeserver="https://matrix.example.org",
        matrix_user_id="@planner:example.org",
        matrix_room="!room:example.org",
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.mark.asyncio
async def test_console_notifier_writes_reminder() -> None:
    lines: list[str] = []
    notifier = ConsoleNotifier(write=lines.append)

    await notifier.send_text(text="wrap up")

    assert notifier.permission_granted() is True
    assert lines and lines[0].endswith("[REMINDER] wrap up")


def test_matrix_permission_requires_full_configuration() -> None:
    assert MatrixNotifier(_matrix_settings()).permission_granted() is True
    assert MatrixNotifier(_matrix_settings(matrix_room="")).permission_granted() is False


def test_build_notifier_falls_back_to_console() -> None:
    assert isinstance(build_notifier(_matrix_settings()), MatrixNotifier)
    assert isinstance(build_notifier(_matrix_settings(matrix_homeserver="")), ConsoleNotifier)
    assert isinstance(build_notifier(SimpleNamespace(notify_backend="console")), ConsoleNotifier)


def test_create_initial_state_uses_sqlite_store(settings) -> None:
    state = create_initial_state(settings=settings)
    state.planner.add_quick_task("persisted")

    reopened = create_initial_state(settings=settings)

    assert settings.db_path.exists()
    assert [t.title for t in reopened.planner.state.tasks] == ["persisted"]


def test_console_filter_quiets_clock_and_third_party() -> None:
    f = _ConsoleNoiseFilter()

    def record(name: str, level: int) -> logging.LogRecord:
        return logging.LogRecord(name, level, __file__, 1, "msg", None, None)

    assert f.filter(record("focus135.cli.commands", logging.INFO))
    assert not f.filter(record("focus135.core.clock", logging.INFO))
    assert f.filter(record("focus135.core.clock", logging.WARNING))
    assert not f.filter(record("nio.client", logging.WARNING))
