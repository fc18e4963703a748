import os

# Must be set before fakester.constants is imported anywhere.
os.environ.setdefault("FAKESTER_DB_URL", "sqlite://:memory:")
os.environ.setdefault("FAKESTER_LOG_DIR", "")
os.environ.setdefault("FAKESTER_FRONTEND_DIR", "__no_frontend__")

import pytest

from fakester.room_manager import RoomManager
from fakester.schemas import Identity


class MockWebSocket:
    """Lightweight stand-in for fastapi.WebSocket."""

    def __init__(self, fail_sends: bool = False):
        self.sent_messages: list[dict] = []
        self.closed = False
        self.close_code = None
        self.fail_sends = fail_sends

    async def send_json(self, data: dict):
        if self.fail_sends:
            raise RuntimeError("socket is gone")
        self.sent_messages.append(data)

    async def close(self, code: int = 1000):
        self.closed = True
        self.close_code = code

    def all(self, msg_type: str) -> list[dict]:
        """Return all sent messages of a given type."""
        return [m for m in self.sent_messages if m.get("type") == msg_type]

    def last(self, msg_type: str) -> dict | None:
        """Return the last sent message of a given type."""
        matching = self.all(msg_type)
        return matching[-1] if matching else None


class FixedCodes:
    """Random source that hands out predetermined join codes."""

    def __init__(self, *codes: int):
        self.codes = list(codes)

    def choice(self, seq):
        return self.codes.pop(0) if self.codes else seq[0]

    def randrange(self, n):
        return 0


def identity(user_id: str, name: str | None = None) -> Identity:
    return Identity(id=user_id, display_name=name or user_id.upper())


def connect(manager: RoomManager, user_id: str, name: str | None = None) -> MockWebSocket:
    """Bind a fresh mock connection for *user_id* (call inside a running loop)."""
    ws = MockWebSocket()
    manager.registry.bind(ws, identity(user_id, name))
    return ws


@pytest.fixture
def manager() -> RoomManager:
    return RoomManager(pin_width=6, grace_period=0.05)
