"""Pydantic data schemas used across the backend service.

This module centralises all models so that other packages can import
from a single location instead of sprinkling the definitions across
multiple files.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# -----------------------------
# Runtime & Lobby
# -----------------------------


class GameState(str, Enum):
    """Room lifecycle. Only forward transitions listed in ``_NEXT`` are legal."""

    LOBBY = "LOBBY"
    STARTING = "STARTING"
    PLAYING = "PLAYING"
    RESULTS = "RESULTS"
    FINISHED = "FINISHED"

    def can_advance_to(self, target: "GameState") -> bool:
        return target in _NEXT[self]


_NEXT: Dict[GameState, frozenset] = {
    GameState.LOBBY: frozenset({GameState.STARTING}),
    GameState.STARTING: frozenset({GameState.PLAYING}),
    GameState.PLAYING: frozenset({GameState.RESULTS, GameState.FINISHED}),
    GameState.RESULTS: frozenset({GameState.FINISHED}),
    GameState.FINISHED: frozenset(),
}


class Identity(BaseModel):
    """Who is behind a connection, as resolved by the identity provider."""

    id: str
    display_name: str


class Member(BaseModel):
    """A participant's record inside a room; survives disconnects."""

    id: str
    username: str
    score: int = 0
    ready: bool = False
    connected: bool = True


class GameSettings(BaseModel):
    """Round configuration chosen by the host while in the lobby."""

    songCount: int = Field(default=10, ge=1, le=50)
    guessTime: int = Field(default=30, ge=5, le=120)
    gameType: Literal["points", "lives"] = "points"
    guessTypes: List[str] = Field(default_factory=lambda: ["title", "artist"], min_length=1)
    playlistId: Optional[str] = None
    deviceId: Optional[str] = None


class RoomSnapshot(BaseModel):
    pin: str
    hostId: str
    players: List[Member]
    gameState: GameState
    settings: Optional[GameSettings] = None


class RoomSummary(BaseModel):
    pin: str
    gameState: GameState
    playerCount: int
    hostName: str
    joinable: bool

# -----------------------------
# WebSocket envelopes
# -----------------------------


class Envelope(BaseModel):
    """``{type, payload}`` shape shared by both directions."""

    type: str
    payload: Any = None


class ErrorEnvelope(Envelope):
    """``ERROR`` message; ``code`` is the error class name and never changes."""

    payload: str
    code: str


class JoinPayload(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    pin: str = Field(min_length=1, max_length=16)


class KickPayload(BaseModel):
    playerId: str

# -----------------------------
# REST request / response models
# -----------------------------


class UserOut(BaseModel):
    id: str
    username: Optional[str] = None
    displayName: str
    xp: int = 0
    spots: int = 0
    isGuest: bool = False


class AuthResponse(BaseModel):
    token: str
    user: UserOut


class SignupRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6, max_length=72)
    display_name: Optional[str] = Field(default=None, max_length=100)


class LoginRequest(BaseModel):
    username: str
    password: str


__all__ = [
    # runtime
    "GameState",
    "Identity",
    "Member",
    "GameSettings",
    "RoomSnapshot",
    "RoomSummary",
    # websocket
    "Envelope",
    "ErrorEnvelope",
    "JoinPayload",
    "KickPayload",
    # rest
    "UserOut",
    "AuthResponse",
    "SignupRequest",
    "LoginRequest",
]
