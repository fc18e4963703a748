from __future__ import annotations

import json
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from ..auth_utils import resolve_identity
from ..constants import AUTH_COOKIE, CLOSE_AUTH_REQUIRED
from ..errors import AuthenticationRequired
from ..logger import get_logger, log_game_event
from ..protocol import handle_ws_message
from ..room_manager import RoomManager

router = APIRouter(prefix="", tags=["ws"])
logger = get_logger(__name__)


@router.websocket("/ws")
async def websocket_endpoint(ws: WebSocket, token: Optional[str] = Query(default=None)):
    manager: RoomManager = ws.app.state.room_manager
    identity = await resolve_identity(token or ws.cookies.get(AUTH_COOKIE))
    try:
        manager.registry.bind(ws, identity)
    except AuthenticationRequired:
        # No authenticated channel exists yet, so nothing is sent.
        await ws.close(code=CLOSE_AUTH_REQUIRED)
        return

    try:
        await ws.accept()
        log_game_event("ws_connected", player_id=identity.id)
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                logger.warning("Dropping binary frame from %s", identity.id)
                continue
            try:
                data = json.loads(raw)
            except ValueError:
                logger.warning("Dropping unparseable frame from %s", identity.id)
                continue
            try:
                await handle_ws_message(manager, ws, data)
            except Exception:
                logger.exception("Error handling message from %s", identity.id)
    except WebSocketDisconnect:
        pass
    finally:
        await manager.registry.on_close(ws)
        log_game_event("ws_disconnected", player_id=identity.id)
