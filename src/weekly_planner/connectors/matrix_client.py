# src/weekly_planner/connectors/matrix_client.py

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from nio import AsyncClient, AsyncClientConfig, LoginResponse, RoomSendResponse

from ..reminders.sinks import SinkError

logger = logging.getLogger(__name__)


def _session_path(store_dir: Path) -> Path:
    return store_dir / "session.json"


def _load_session(path: Path) -> dict[str, str] | None:
    try:
        data = json.loads(path.read_text("utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Failed to read Matrix session %s: %r", path, e)
        return None
    if not isinstance(data, dict):
        return None
    keys = ("access_token", "user_id", "device_id")
    if not all(data.get(k) for k in keys):
        logger.warning("Matrix session %s is missing required fields", path)
        return None
    return {k: str(data[k]) for k in keys}


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False), "utf-8")
    os.replace(tmp, path)
    try:
        os.chmod(path, 0o600)
    except OSError:
        # Best-effort: not critical on Windows or restricted FS.
        pass


class MatrixMessenger:
    """
    OutboundMessenger that posts plain-text messages into a Matrix room.

    The client is created on first use, inside the reminder event loop:
    - session.json under matrix_store_path is reused when present,
    - otherwise a one-time password login bootstraps it.

    Only unencrypted sends are attempted; reminder rooms are expected to be
    plain rooms the bot account has joined.
    """

    def __init__(self, settings: Any) -> None:
        self._homeserver = (getattr(settings, "matrix_homeserver", "") or "").strip()
        self._user_id = (getattr(settings, "matrix_user_id", "") or "").strip()
        self._password = (getattr(settings, "matrix_password", "") or "").strip()
        self._default_room = (getattr(settings, "matrix_room_id", "") or "").strip()
        self._store_dir = Path(getattr(settings, "matrix_store_path", Path(".local/planner/matrix_store")))
        self._device_name = f"{getattr(settings, 'app_name', 'weekly-planner')} (Python)"

        self._client: AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self._homeserver and self._user_id and self._default_room)

    async def _ensure_client(self) -> AsyncClient:
        async with self._client_lock:
            if self._client is not None:
                return self._client
            if not self._homeserver or not self._user_id:
                raise SinkError("Matrix is not configured: set PLANNER_MATRIX_HOMESERVER and PLANNER_MATRIX_USER_ID")

            self._store_dir.mkdir(parents=True, exist_ok=True)
            client = AsyncClient(
                self._homeserver,
                self._user_id,
                config=AsyncClientConfig(encryption_enabled=False, store_sync_tokens=False),
            )

            session_file = _session_path(self._store_dir)
            session = _load_session(session_file) if session_file.exists() else None
            if session is not None:
                client.access_token = session["access_token"]
                client.user_id = session["user_id"]
                client.device_id = session["device_id"]
                logger.info("Matrix session restored for %s", client.user_id)
            else:
                await self._login(client, session_file)

            self._client = client
            return client

    async def _login(self, client: AsyncClient, session_file: Path) -> None:
        if not self._password:
            await client.close()
            raise SinkError(
                "Matrix session.json not found and password is not set. "
                "Set PLANNER_MATRIX_PASSWORD once to bootstrap a session."
            )

        logger.info("Logging in to Matrix to bootstrap a new session (device_name=%r)...", self._device_name)
        resp = await client.login(password=self._password, device_name=self._device_name)
        if not isinstance(resp, LoginResponse):
            await client.close()
            raise SinkError(f"Matrix login failed: {resp!r}")

        try:
            _atomic_write_json(
                session_file,
                {"access_token": resp.access_token, "user_id": resp.user_id, "device_id": resp.device_id},
            )
            logger.info("Matrix session saved to %s (user=%s)", session_file, resp.user_id)
        except OSError as e:
            # The live session still works; we just log in again next start.
            logger.error("Failed to write Matrix session.json (%s): %r", session_file, e)

    async def send_text(self, *, text: str, room_id: str | None = None) -> None:
        target = (room_id or self._default_room).strip()
        if not target:
            raise SinkError("no Matrix room configured (PLANNER_MATRIX_ROOM_ID)")

        client = await self._ensure_client()
        resp = await client.room_send(
            room_id=target,
            message_type="m.room.message",
            content={"msgtype": "m.text", "body": text},
        )
        if not isinstance(resp, RoomSendResponse):
            raise SinkError(f"Matrix send to {target} failed: {resp!r}")
        logger.debug("Matrix message sent room=%s event=%s", target, resp.event_id)

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.close()
            logger.info("Matrix client closed.")
