"""Room lifecycle and real-time fan-out.

The manager owns the table of live rooms keyed by join code. Every
transition for a room runs under that room's lock, and a transition never
holds two room locks at once, so unrelated rooms progress independently.
Each transition that changes what clients can see enqueues one full
``LOBBY_UPDATE`` snapshot to every live connection of the room before it
returns.
"""
from __future__ import annotations

import asyncio
import random
from typing import Any, Dict, List, Optional

from .constants import (
    CLOSE_GOING_AWAY,
    ERROR,
    GAME_EVENT,
    GRACE_PERIOD_SECONDS,
    GUESS_SUBMITTED,
    KICKED,
    MAX_PIN_ATTEMPTS,
    PIN_WIDTH,
    SERVER_SHUTDOWN,
)
from .errors import (
    ActionNotAllowed,
    AuthenticationRequired,
    CapacityExceeded,
    NotHost,
    NotInRoom,
    RoomNotFound,
    RoomError,
    RoomNotJoinable,
)
from .logger import get_logger, log_game_event
from .registry import ConnectionRegistry
from .room import Room
from .schemas import Envelope, ErrorEnvelope, GameSettings, GameState, Identity, RoomSummary

logger = get_logger(__name__)


class RoomManager:
    """Process-wide registry of rooms; created at startup, drained on shutdown."""

    def __init__(
        self,
        registry: Optional[ConnectionRegistry] = None,
        *,
        pin_width: int = PIN_WIDTH,
        grace_period: float = GRACE_PERIOD_SECONDS,
        rng: Optional[random.Random] = None,
    ):
        if pin_width < 1:
            raise ValueError("pin_width must be at least 1")
        self.registry = registry or ConnectionRegistry()
        self.registry.on_disconnect = self.disconnect
        self.pin_width = pin_width
        self.grace_period = grace_period
        self._rng = rng or random.SystemRandom()
        self._rooms: Dict[str, Room] = {}
        self._closing = False

    # ---------------------------------------------------------------------
    # Lookups
    # ---------------------------------------------------------------------

    def get_room(self, code: str) -> Optional[Room]:
        return self._rooms.get(code)

    def room_codes(self) -> List[str]:
        return list(self._rooms)

    def summary(self, code: str) -> Optional[RoomSummary]:
        room = self._rooms.get(code)
        return room.summary() if room else None

    def __len__(self) -> int:
        return len(self._rooms)

    def _identity(self, connection: Any) -> Identity:
        binding = self.registry.resolve(connection)
        if binding.identity is None:
            raise AuthenticationRequired()
        return binding.identity

    # ---------------------------------------------------------------------
    # Join codes
    # ---------------------------------------------------------------------

    def _code_space(self) -> range:
        low = 10 ** (self.pin_width - 1) if self.pin_width > 1 else 1
        return range(low, 10 ** self.pin_width)

    def _generate_code(self) -> str:
        space = self._code_space()
        if len(self._rooms) >= len(space):
            raise CapacityExceeded()
        for _ in range(MAX_PIN_ATTEMPTS):
            code = str(self._rng.choice(space))
            if code not in self._rooms:
                return code
        # Dense table: walk the space from a random offset.
        start = self._rng.randrange(len(space))
        for offset in range(len(space)):
            code = str(space[(start + offset) % len(space)])
            if code not in self._rooms:
                return code
        raise CapacityExceeded()

    # ---------------------------------------------------------------------
    # Fan-out helpers
    # ---------------------------------------------------------------------

    def _send(self, connection: Any, envelope: Envelope) -> None:
        self.registry.send(connection, envelope.model_dump(mode="json"))

    def send_error(self, connection: Any, error: RoomError) -> None:
        self._send(connection, ErrorEnvelope(type=ERROR, payload=str(error), code=error.code))

    def _broadcast(self, room: Room, envelope: Envelope) -> None:
        if self._rooms.get(room.code) is not room:
            return
        message = envelope.model_dump(mode="json")
        room.for_each_live_connection(lambda conn: self.registry.send(conn, message))

    def _broadcast_snapshot(self, room: Room) -> None:
        self._broadcast(room, room.snapshot())

    def _advance(self, room: Room, target: GameState) -> None:
        room.advance(target)
        self._broadcast_snapshot(room)
        log_game_event("state_changed", room_code=room.code, data={"state": target.value})

    # ---------------------------------------------------------------------
    # Transitions
    # ---------------------------------------------------------------------

    async def create_room(self, connection: Any) -> Room:
        identity = self._identity(connection)
        # Reserve the code before leaving the old room so a full code space
        # leaves the requester where they were.
        code = self._generate_code()
        room = Room(code, identity)
        self._rooms[code] = room
        await self._leave_current_room(connection)

        async with room.lock:
            room.attach(connection, identity.id)
            self.registry.attach_room(connection, code)
            self._broadcast_snapshot(room)

        logger.info("Room %s created by %s", code, identity.id)
        log_game_event("room_created", room_code=code, player_id=identity.id)
        return room

    async def join_room(self, connection: Any, code: str) -> Room:
        identity = self._identity(connection)
        code = code.strip()
        room = self._rooms.get(code)
        if room is None:
            raise RoomNotFound()
        if room.state != GameState.LOBBY:
            raise RoomNotJoinable()

        current = self.registry.resolve(connection).room_code
        if current is not None and current != code:
            await self._leave_current_room(connection)

        async with room.lock:
            if self._rooms.get(code) is not room:
                # Expired while we were waiting for the lock
                raise RoomNotFound()
            if room.state != GameState.LOBBY:
                raise RoomNotJoinable()

            rejoin = room.is_member(identity.id)
            self._cancel_expiry(room)
            room.add_member(identity)
            room.attach(connection, identity.id)
            self.registry.attach_room(connection, code)
            self._broadcast_snapshot(room)

        logger.info("%s %s room %s", identity.id, "rejoined" if rejoin else "joined", code)
        log_game_event(
            "player_rejoined" if rejoin else "player_joined",
            room_code=code,
            player_id=identity.id,
            data={"player_count": len(room.members)},
        )
        return room

    async def start_game(self, connection: Any) -> None:
        room, identity = self._require_room(connection)
        async with room.lock:
            self._check_host(room, identity)
            if room.state != GameState.LOBBY:
                raise ActionNotAllowed("The game has already started.")
            self._advance(room, GameState.STARTING)
            self._advance(room, GameState.PLAYING)
            self._broadcast(room, Envelope(type=GAME_EVENT, payload={"gameState": room.state.value}))
        logger.info("Room %s started with %d players", room.code, len(room.members))

    async def show_results(self, connection: Any) -> None:
        room, identity = self._require_room(connection)
        async with room.lock:
            self._check_host(room, identity)
            self._advance(room, GameState.RESULTS)
            self._broadcast(room, Envelope(type=GAME_EVENT, payload={"gameState": room.state.value}))

    async def end_game(self, connection: Any) -> None:
        room, identity = self._require_room(connection)
        async with room.lock:
            self._check_host(room, identity)
            self._advance(room, GameState.FINISHED)
            self._broadcast(room, Envelope(type=GAME_EVENT, payload={"gameState": room.state.value}))

    async def toggle_ready(self, connection: Any) -> None:
        room, identity = self._require_room(connection)
        async with room.lock:
            if room.state != GameState.LOBBY:
                raise ActionNotAllowed("Readiness can only change in the lobby.")
            member = room.members.get(identity.id)
            if member is None:
                return
            member.ready = not member.ready
            self._broadcast_snapshot(room)

    async def update_settings(self, connection: Any, settings: GameSettings) -> None:
        room, identity = self._require_room(connection)
        async with room.lock:
            self._check_host(room, identity)
            if room.state != GameState.LOBBY:
                raise ActionNotAllowed("Settings can only change in the lobby.")
            room.settings = settings
            self._broadcast_snapshot(room)

    async def submit_guess(self, connection: Any, guess: Any) -> None:
        room, identity = self._require_room(connection)
        async with room.lock:
            if room.state != GameState.PLAYING:
                raise ActionNotAllowed("Guesses are only accepted while a game is running.")
            member = room.members.get(identity.id)
            if member is None:
                return
            forwarded = Envelope(
                type=GUESS_SUBMITTED,
                payload={"playerId": member.id, "username": member.username, "guess": guess},
            )
            for conn in room.connections_of(room.host_id):
                self._send(conn, forwarded)

    async def kick_player(self, connection: Any, player_id: str) -> None:
        room, identity = self._require_room(connection)
        async with room.lock:
            self._check_host(room, identity)
            if room.state != GameState.LOBBY:
                raise ActionNotAllowed("Players can only be removed in the lobby.")
            if player_id == identity.id or not room.is_member(player_id):
                return
            for conn in room.remove_member(player_id):
                self._send(conn, Envelope(type=KICKED, payload={"pin": room.code}))
                self.registry.detach_room(conn)
            self._broadcast_snapshot(room)
        log_game_event("player_kicked", room_code=room.code, player_id=player_id)

    async def leave_room(self, connection: Any) -> None:
        room, identity = self._require_room(connection)
        async with room.lock:
            if self._rooms.get(room.code) is not room:
                return
            for conn in room.remove_member(identity.id):
                self.registry.detach_room(conn)
            self.registry.detach_room(connection)
            log_game_event("player_left", room_code=room.code, player_id=identity.id)
            if not room.members:
                self._destroy(room, reason="empty")
                return
            self._broadcast_snapshot(room)
            if room.live_connection_count() == 0:
                self._arm_expiry(room)

    async def disconnect(self, connection: Any) -> None:
        """Connection went away: the member stays, only liveness changes."""
        code = self.registry.resolve(connection).room_code
        room = self._rooms.get(code) if code is not None else None
        if room is None:
            self.registry.detach_room(connection)
            return
        async with room.lock:
            self._detach(room, connection)

    # ---------------------------------------------------------------------
    # Internals
    # ---------------------------------------------------------------------

    def _require_room(self, connection: Any) -> "tuple[Room, Identity]":
        identity = self._identity(connection)
        code = self.registry.resolve(connection).room_code
        room = self._rooms.get(code) if code is not None else None
        if room is None:
            raise NotInRoom()
        return room, identity

    @staticmethod
    def _check_host(room: Room, identity: Identity) -> None:
        if room.host_id != identity.id:
            raise NotHost()

    async def _leave_current_room(self, connection: Any) -> None:
        """A connection sits in one room at a time; detach it from the previous one."""
        code = self.registry.resolve(connection).room_code
        if code is None:
            return
        room = self._rooms.get(code)
        if room is None:
            self.registry.detach_room(connection)
            return
        async with room.lock:
            self._detach(room, connection)

    def _detach(self, room: Room, connection: Any) -> None:
        # Caller holds room.lock
        identity_id = room.detach(connection)
        self.registry.detach_room(connection)
        if identity_id is None or self._rooms.get(room.code) is not room:
            return
        logger.info("%s disconnected from room %s", identity_id, room.code)
        log_game_event("player_disconnected", room_code=room.code, player_id=identity_id)
        self._broadcast_snapshot(room)
        if room.live_connection_count() == 0:
            self._arm_expiry(room)

    # -------------------- Expiry -------------------- #

    def _arm_expiry(self, room: Room) -> None:
        if self._closing:
            return
        if room.expiry_task is not None and not room.expiry_task.done():
            return
        room.expiry_task = asyncio.create_task(self._expire_after(room))
        logger.debug("Room %s empty, expiring in %ss", room.code, self.grace_period)

    @staticmethod
    def _cancel_expiry(room: Room) -> None:
        task = room.expiry_task
        room.expiry_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _expire_after(self, room: Room) -> None:
        try:
            await asyncio.sleep(self.grace_period)
            async with room.lock:
                # Decide at fire time; a reconnect may have superseded this timer.
                if self._rooms.get(room.code) is not room or room.live_connection_count() > 0:
                    return
                self._destroy(room, reason="expired")
        except asyncio.CancelledError:
            pass

    def _destroy(self, room: Room, *, reason: str) -> None:
        # Caller holds room.lock
        if self._rooms.get(room.code) is room:
            del self._rooms[room.code]
        self._cancel_expiry(room)
        for conn in list(room.connections):
            self.registry.detach_room(conn)
        room.connections.clear()
        logger.info("Room %s destroyed (%s)", room.code, reason)
        log_game_event("room_destroyed", room_code=room.code, data={"reason": reason})

    # ---------------------------------------------------------------------
    # Shutdown
    # ---------------------------------------------------------------------

    async def shutdown(self, reason: str = "Server is shutting down") -> None:
        """Notify every client, flush queues, close sockets and forget all rooms."""
        self._closing = True
        notice = Envelope(type=SERVER_SHUTDOWN, payload={"reason": reason})
        for room in list(self._rooms.values()):
            self._cancel_expiry(room)
        for conn in self.registry.connections():
            self._send(conn, notice)
        await self.registry.drain()
        # Forget rooms first so close callbacks find nothing to expire.
        self._rooms.clear()
        for conn in self.registry.connections():
            try:
                await conn.close(code=CLOSE_GOING_AWAY)
            except Exception as exc:
                logger.debug("Close during shutdown failed: %s", exc)
        logger.info("Room manager shut down")


__all__ = ["RoomManager"]
