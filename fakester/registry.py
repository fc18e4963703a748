"""Connection registry: who is behind each socket and which room it sits in.

Every bound connection also gets an outbound queue drained by its own writer
task, so room transitions only ever *enqueue* messages and never wait on a
slow client.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .errors import AuthenticationRequired
from .logger import get_logger
from .schemas import Identity

logger = get_logger(__name__)

DisconnectHandler = Callable[[Any], Awaitable[None]]


@dataclass(frozen=True)
class Binding:
    identity: Optional[Identity] = None
    room_code: Optional[str] = None

    @property
    def is_bound(self) -> bool:
        return self.identity is not None


UNBOUND = Binding()


class _Outbox:
    """Per-connection FIFO plus the task writing it to the socket."""

    def __init__(self, connection: Any):
        self.connection = connection
        self.queue: "asyncio.Queue[dict]" = asyncio.Queue()
        self.failed = False
        self.writer = asyncio.create_task(self._pump())

    async def _pump(self) -> None:
        while True:
            message = await self.queue.get()
            try:
                if not self.failed:
                    await self.connection.send_json(message)
            except Exception as exc:
                # The transport reports the close separately; stop writing.
                self.failed = True
                logger.debug("Send failed, discarding further messages: %s", exc)
            finally:
                self.queue.task_done()


class ConnectionRegistry:
    """Maps live connections to ``(identity, room code)``."""

    def __init__(self, on_disconnect: Optional[DisconnectHandler] = None):
        self.on_disconnect = on_disconnect
        self._bindings: Dict[Any, Binding] = {}
        self._outboxes: Dict[Any, _Outbox] = {}

    # -------------------- Binding -------------------- #

    def bind(self, connection: Any, identity: Optional[Identity]) -> None:
        if identity is None:
            raise AuthenticationRequired()
        self._bindings[connection] = Binding(identity=identity)
        if connection not in self._outboxes:
            self._outboxes[connection] = _Outbox(connection)

    def attach_room(self, connection: Any, room_code: str) -> None:
        binding = self._bindings.get(connection)
        if binding is not None:
            self._bindings[connection] = Binding(identity=binding.identity, room_code=room_code)

    def detach_room(self, connection: Any) -> None:
        binding = self._bindings.get(connection)
        if binding is not None and binding.room_code is not None:
            self._bindings[connection] = Binding(identity=binding.identity)

    def resolve(self, connection: Any) -> Binding:
        return self._bindings.get(connection, UNBOUND)

    def connections(self) -> List[Any]:
        return list(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    # -------------------- Outbound -------------------- #

    def send(self, connection: Any, message: dict) -> None:
        """Queue *message* for *connection*; unknown connections are ignored."""
        outbox = self._outboxes.get(connection)
        if outbox is not None:
            outbox.queue.put_nowait(message)

    async def drain(self) -> None:
        """Wait until everything queued so far has reached the transport."""
        await asyncio.gather(*(box.queue.join() for box in list(self._outboxes.values())))

    # -------------------- Teardown -------------------- #

    async def on_close(self, connection: Any) -> None:
        """Transport callback for a terminated connection; the only removal path."""
        binding = self._bindings.get(connection)
        if binding is None:
            return
        try:
            if binding.room_code is not None and self.on_disconnect is not None:
                await self.on_disconnect(connection)
        finally:
            self._bindings.pop(connection, None)
            outbox = self._outboxes.pop(connection, None)
            if outbox is not None:
                outbox.writer.cancel()


__all__ = ["Binding", "UNBOUND", "ConnectionRegistry"]
