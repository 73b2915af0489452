"""Client sessions for the WebSocket and long-polling transports."""

import asyncio
import json
import logging
import time
from uuid import uuid4
from collections.abc import Callable
from dataclasses import dataclass, field

from fastapi import WebSocket

logger = logging.getLogger(__name__)

OPEN_FRAME = "o\n"
HEARTBEAT_FRAME = "h\n"
CLOSE_FRAME = 'c[3000,"Go away!"]\n'


@dataclass
class WebSocketSession:
    """A broker session over a native WebSocket connection."""

    websocket: WebSocket
    session_id: str
    closed: bool = False

    async def send(self, text: str) -> None:
        await self.websocket.send_text(text)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self.websocket.close()


@dataclass
class SockJSWebSocketSession(WebSocketSession):
    """A WebSocket session that wraps frames in SockJS message arrays."""

    async def open(self) -> None:
        await self.websocket.send_text(OPEN_FRAME.strip())

    async def send(self, text: str) -> None:
        await self.websocket.send_text("a" + json.dumps([text]))


def decode_sockjs_messages(payload: str) -> list[str]:
    """Decode a SockJS client payload, a JSON array of strings."""
    if not payload:
        return []
    messages = json.loads(payload)
    if not isinstance(messages, list) or not all(
        isinstance(message, str) for message in messages
    ):
        raise ValueError("SockJS payload must be a JSON array of strings")
    return messages


@dataclass
class PollingSession:
    """A broker session emulated over repeated HTTP long polls.

    Polls answer with SockJS-style frames: ``o`` when the session opens,
    ``a[...]`` with queued messages, ``h`` when the poll timed out idle and
    ``c[...]`` once the session is closed.
    """

    session_id: str
    clock: Callable[[], float] = time.monotonic
    outbox: asyncio.Queue[str] = field(default_factory=asyncio.Queue)
    opened: bool = False
    closed: bool = False
    last_seen: float = 0.0

    def __post_init__(self) -> None:
        self.last_seen = self.clock()

    def touch(self) -> None:
        self.last_seen = self.clock()

    async def send(self, text: str) -> None:
        if not self.closed:
            self.outbox.put_nowait(text)

    async def close(self) -> None:
        self.closed = True

    async def poll(self, timeout: float) -> str:
        """Wait up to ``timeout`` seconds for outbound messages."""
        self.touch()
        if not self.opened:
            self.opened = True
            return OPEN_FRAME
        if self.closed and self.outbox.empty():
            return CLOSE_FRAME
        try:
            first = await asyncio.wait_for(self.outbox.get(), timeout)
        except TimeoutError:
            return CLOSE_FRAME if self.closed else HEARTBEAT_FRAME
        finally:
            self.touch()
        messages = [first]
        while not self.outbox.empty():
            messages.append(self.outbox.get_nowait())
        return "a" + json.dumps(messages) + "\n"


@dataclass
class PollingSessionRegistry:
    """Holds long-polling sessions and expires idle ones.

    Sessions are looked up by the client-chosen SockJS id, but each one gets
    a server-generated ``session_id`` for the broker.
    """

    ttl_seconds: float = 60.0
    clock: Callable[[], float] = time.monotonic
    _sessions: dict[str, PollingSession] = field(default_factory=dict)

    def get(self, session_id: str) -> PollingSession | None:
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: str) -> PollingSession:
        session = self._sessions.get(session_id)
        if session is None:
            session = PollingSession(session_id=uuid4().hex, clock=self.clock)
            self._sessions[session_id] = session
            logger.debug(
                "Opened polling session %s as %s", session_id, session.session_id
            )
        return session

    def reap(self) -> list[PollingSession]:
        """Remove and return sessions idle longer than the TTL or closed."""
        now = self.clock()
        expired = {
            key: session
            for key, session in self._sessions.items()
            if session.closed or now - session.last_seen > self.ttl_seconds
        }
        for key in expired:
            del self._sessions[key]
        return list(expired.values())

    def __len__(self) -> int:
        return len(self._sessions)
