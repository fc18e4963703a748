from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from .constants import LOBBY_UPDATE
from .errors import ActionNotAllowed
from .schemas import Envelope, GameSettings, GameState, Identity, Member, RoomSnapshot, RoomSummary

# NOTE: ``Room`` holds its live connections only so it can fan out snapshots.
# Connections refer back to a room by code through the registry, never by
# object reference.


class Room:
    """Runtime state of one lobby / game, keyed by its join code."""

    def __init__(self, code: str, host: Identity):
        self.code = code
        self.host_id = host.id
        # identity id -> Member, insertion order is join order
        self.members: Dict[str, Member] = {}
        self.state = GameState.LOBBY
        self.settings: Optional[GameSettings] = None
        # live connection -> identity id
        self.connections: Dict[Any, str] = {}
        # Serialises every mutation of this room (dispatch and expiry)
        self.lock = asyncio.Lock()
        # Task armed when the last live connection goes away
        self.expiry_task: Optional[asyncio.Task] = None

        self.add_member(host)

    # -------------------- Membership -------------------- #

    def add_member(self, identity: Identity) -> Member:
        member = self.members.get(identity.id)
        if member is None:
            member = Member(id=identity.id, username=identity.display_name)
            self.members[identity.id] = member
        return member

    def remove_member(self, identity_id: str) -> List[Any]:
        """Drop *identity_id* for good. Returns the connections that were detached."""
        self.members.pop(identity_id, None)
        detached = [conn for conn, iid in self.connections.items() if iid == identity_id]
        for conn in detached:
            del self.connections[conn]
        if identity_id == self.host_id:
            self.migrate_host()
        return detached

    def migrate_host(self) -> None:
        """Hand the host role to the earliest-joined live member, else the earliest member."""
        if not self.members:
            return
        for member in self.members.values():
            if member.connected:
                self.host_id = member.id
                return
        self.host_id = next(iter(self.members))

    def is_member(self, identity_id: str) -> bool:
        return identity_id in self.members

    # -------------------- Connections -------------------- #

    def attach(self, connection: Any, identity_id: str) -> None:
        self.connections[connection] = identity_id
        self.members[identity_id].connected = True

    def detach(self, connection: Any) -> Optional[str]:
        """Remove *connection*; the member stays but may go offline."""
        identity_id = self.connections.pop(connection, None)
        if identity_id is None:
            return None
        member = self.members.get(identity_id)
        if member is not None:
            member.connected = identity_id in self.connections.values()
            if not member.connected and self.state == GameState.LOBBY:
                member.ready = False
        return identity_id

    def connections_of(self, identity_id: str) -> List[Any]:
        return [conn for conn, iid in self.connections.items() if iid == identity_id]

    def live_connection_count(self) -> int:
        return len(self.connections)

    def for_each_live_connection(self, fn: Callable[[Any], None]) -> None:
        for conn in list(self.connections):
            fn(conn)

    # -------------------- Lifecycle -------------------- #

    def advance(self, target: GameState) -> None:
        if not self.state.can_advance_to(target):
            raise ActionNotAllowed(f"Game cannot move from {self.state.value} to {target.value}.")
        self.state = target

    # -------------------- Views -------------------- #

    def snapshot(self) -> Envelope:
        """The complete room state every client receives on each change."""
        return Envelope(
            type=LOBBY_UPDATE,
            payload=RoomSnapshot(
                pin=self.code,
                hostId=self.host_id,
                players=[m.model_copy() for m in self.members.values()],
                gameState=self.state,
                settings=self.settings,
            ),
        )

    def summary(self) -> RoomSummary:
        host = self.members.get(self.host_id)
        return RoomSummary(
            pin=self.code,
            gameState=self.state,
            playerCount=len(self.members),
            hostName=host.username if host else "Unknown",
            joinable=self.state == GameState.LOBBY,
        )


__all__ = ["Room"]
