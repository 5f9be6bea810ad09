# src/focus135/connectors/notifiers.py

from __future__ import annotations

"""
Notifier implementations for the daily clock.

- ConsoleNotifier prints the reminder into the terminal (always permitted).
- MatrixNotifier posts the reminder into one configured Matrix room. Permission means
  "Matrix is configured"; the client is created lazily on the clock's event loop.
"""

import logging
from datetime import datetime
from typing import Callable

from nio import AsyncClient, RoomSendResponse

from .matrix_client import create_matrix_client

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleNotifier:
    def __init__(self, write: Callable[[str], None] = print) -> None:
        self._write = write

    def permission_granted(self) -> bool:
        return True

    async def send_text(self, *, text: str) -> None:
        self._write(f"[{_ts_local()}] [REMINDER] {text}")


class MatrixNotifier:
    def __init__(self, settings) -> None:
        self._settings = settings
        self._room_id = (getattr(settings, "matrix_room", "") or "").strip()
        self._client: AsyncClient | None = None

    def permission_granted(self) -> bool:
        s = self._settings
        return bool(
            (getattr(s, "matrix_homeserver", "") or "").strip()
            and (getattr(s, "matrix_user_id", "") or "").strip()
            and self._room_id
        )

    async def _ensure_client(self) -> AsyncClient | None:
        if self._client is None:
            self._client = await create_matrix_client(self._settings)
        return self._client

    async def send_text(self, *, text: str) -> None:
        client = await self._ensure_client()
        if client is None:
            raise RuntimeError("Matrix client is not available")

        resp = await client.room_send(
            room_id=self._room_id,
            message_type="m.room.message",
            content={"msgtype": "m.text", "body": text},
        )
        if not isinstance(resp, RoomSendResponse):
            raise RuntimeError(f"Matrix room_send failed: {resp!r}")
        logger.info("Reminder sent to room %s", self._room_id)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
