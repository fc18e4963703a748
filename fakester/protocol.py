"""Inbound WebSocket message dispatch.

Routes ``{type, payload}`` envelopes to :class:`~fakester.room_manager.RoomManager`
transitions and turns domain errors into an ``ERROR`` message for the sender.
Malformed input is logged and dropped; nothing here closes a connection.
"""
from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from .constants import (
    CREATE_GAME,
    END_GAME,
    JOIN_GAME,
    KICK_PLAYER,
    LEAVE_GAME,
    SHOW_RESULTS,
    START_GAME,
    SUBMIT_GUESS,
    TOGGLE_READY,
    UPDATE_SETTINGS,
)
from .errors import NotHost, RoomError
from .logger import get_logger
from .room_manager import RoomManager
from .schemas import Envelope, GameSettings, JoinPayload, KickPayload

logger = get_logger(__name__)


async def handle_ws_message(manager: RoomManager, connection: Any, data: Any) -> None:
    try:
        message = Envelope.model_validate(data)
    except ValidationError:
        logger.warning("Dropping malformed message: %r", data)
        return

    msg_type = message.type
    try:
        if msg_type == CREATE_GAME:
            await manager.create_room(connection)
        elif msg_type == JOIN_GAME:
            payload = JoinPayload.model_validate(message.payload)
            await manager.join_room(connection, payload.pin)
        elif msg_type == START_GAME:
            await manager.start_game(connection)
        elif msg_type == SUBMIT_GUESS:
            await manager.submit_guess(connection, message.payload)
        elif msg_type == LEAVE_GAME:
            await manager.leave_room(connection)
        elif msg_type == TOGGLE_READY:
            await manager.toggle_ready(connection)
        elif msg_type == UPDATE_SETTINGS:
            settings = GameSettings.model_validate(message.payload)
            await manager.update_settings(connection, settings)
        elif msg_type == KICK_PLAYER:
            payload = KickPayload.model_validate(message.payload)
            await manager.kick_player(connection, payload.playerId)
        elif msg_type == SHOW_RESULTS:
            await manager.show_results(connection)
        elif msg_type == END_GAME:
            await manager.end_game(connection)
        else:
            logger.warning("Dropping message with unknown type %r", msg_type)
    except ValidationError as exc:
        logger.warning("Dropping %s with invalid payload: %s", msg_type, exc.errors())
    except NotHost:
        logger.info("Ignoring host-only %s from a non-host", msg_type)
    except RoomError as exc:
        manager.send_error(connection, exc)


__all__ = ["handle_ws_message"]
