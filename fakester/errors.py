"""Exception taxonomy for the room/session layer.

Everything deriving from :class:`RoomError` is reported to the requesting
connection as an ``ERROR`` message and never terminates the connection.
:class:`AuthenticationRequired` is raised before a channel exists, so the
socket is simply closed.
"""
from __future__ import annotations

from typing import Optional


class FakesterError(Exception):
    """Base class for all domain errors."""

    message = "Unexpected error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)

    @property
    def code(self) -> str:
        """Stable machine-readable name, sent next to the human message."""
        return type(self).__name__


class AuthenticationRequired(FakesterError):
    message = "Authentication required"


class RoomError(FakesterError):
    """Errors delivered to the originating connection only."""


class RoomNotFound(RoomError):
    message = "Room not found."


class RoomNotJoinable(RoomError):
    message = "Game is already running."


class NotHost(RoomError):
    # Never surfaced to clients; host-only actions are silently ignored.
    message = "Only the host can do that."


class CapacityExceeded(RoomError):
    message = "No free room codes available, try again later."


class NotInRoom(RoomError):
    message = "You are not in a game."


class ActionNotAllowed(RoomError):
    message = "That action is not allowed right now."


__all__ = [
    "FakesterError",
    "AuthenticationRequired",
    "RoomError",
    "RoomNotFound",
    "RoomNotJoinable",
    "NotHost",
    "CapacityExceeded",
    "NotInRoom",
    "ActionNotAllowed",
]
