# src/focus135/connectors/matrix_client.py

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from nio import AsyncClient, LoginResponse

logger = logging.getLogger(__name__)


def _session_file(store_dir: Path) -> Path:
    return store_dir / "session.json"


def _read_session(path: Path) -> dict[str, Any]:
    val = json.loads(path.read_text("utf-8"))
    if not isinstance(val, dict):
        raise ValueError("Expected JSON object")
    for key in ("access_token", "user_id", "device_id"):
        if not val.get(key):
            raise ValueError(f"session.json is missing {key}")
    return val


def _write_session(path: Path, data: dict[str, Any]) -> None:
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False), "utf-8")
    os.replace(tmp, path)
    try:
        os.chmod(path, 0o600)
    except OSError:
        # Not critical on Windows or restricted filesystems.
        pass


async def create_matrix_client(settings) -> AsyncClient | None:
    """
    Create a logged-in Matrix AsyncClient for sending reminders.

    The access token is kept in <matrix_store_path>/session.json so the password is
    only needed once. The file is sensitive and lives under the gitignored data dir.
    Returns None when Matrix is not configured or login fails.
    """
    homeserver = (getattr(settings, "matrix_homeserver", "") or "").strip()
    user_id = (getattr(settings, "matrix_user_id", "") or "").strip()
    password = (getattr(settings, "matrix_password", "") or "").strip()
    store_dir = Path(getattr(settings, "matrix_store_path", Path(".local/focus135/matrix_store")))

    if not homeserver or not user_id:
        logger.error("Matrix is not configured: set FOCUS135_MATRIX_HOMESERVER and FOCUS135_MATRIX_USER_ID")
        return None

    try:
        store_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("Failed to create directory %s: %r", store_dir, e)
    session_path = _session_file(store_dir)

    client = AsyncClient(homeserver, user_id)

    if session_path.exists():
        try:
            data = _read_session(session_path)
            client.access_token = str(data["access_token"])
            client.user_id = str(data["user_id"])
            client.device_id = str(data["device_id"])
            logger.info("Matrix session restored for %s", client.user_id)
            return client
        except (OSError, ValueError) as e:
            logger.warning("Failed to restore Matrix session.json, will try password login: %r", e)

    if not password:
        logger.error(
            "Matrix session.json not found and password is not set. "
            "Set FOCUS135_MATRIX_PASSWORD once to bootstrap a session."
        )
        await client.close()
        return None

    device_name = f"{getattr(settings, 'app_name', 'focus135')} reminders"
    logger.info("Logging in to Matrix to bootstrap a new session (device_name=%r)...", device_name)
    resp = await client.login(password=password, device_name=device_name)

    if not isinstance(resp, LoginResponse):
        logger.error("Matrix login failed: %r", resp)
        await client.close()
        return None

    try:
        _write_session(
            session_path,
            {"access_token": resp.access_token, "user_id": resp.user_id, "device_id": resp.device_id},
        )
        logger.info("Matrix session saved to %s (user=%s)", session_path, resp.user_id)
    except OSError as e:
        # Still usable for this run; the next start will log in again.
        logger.error("Failed to write Matrix session.json (%s): %r", session_path, e)

    return client
