"""In-process STOMP message broker.

Destinations under the broker prefixes (``/queue/``, ``/topic/``) fan out to
their current subscribers. Destinations under the application prefix
(``/app``) are routed to registered handlers; a handler's return value is
published to ``/topic`` plus the handler's destination.
"""

import itertools
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

from doge.messaging.dispatch import DispatchPool
from doge.messaging.frames import Frame, FrameError, parse_frame
from doge.services.metrics import AppMetrics

logger = logging.getLogger(__name__)

STOMP_VERSION = "1.2"


class Session(Protocol):
    """A connected client on any transport."""

    session_id: str

    async def send(self, text: str) -> None:
        """Deliver one serialized frame to the client."""

    async def close(self) -> None:
        """Close the underlying transport."""


@dataclass(frozen=True)
class InboundMessage:
    """A SEND frame addressed to an application destination."""

    destination: str
    body: str
    headers: dict[str, str]
    session_id: str


Handler = Callable[[InboundMessage], Awaitable[object | None]]


@dataclass(frozen=True)
class DestinationRouter:
    """Classifies destinations as broker-bound or application-bound."""

    broker_prefixes: tuple[str, ...] = ("/queue/", "/topic/")
    application_prefixes: tuple[str, ...] = ("/app",)

    def is_broker_destination(self, destination: str) -> bool:
        return destination.startswith(self.broker_prefixes)

    def application_destination(self, destination: str) -> str | None:
        """Return the handler lookup path, or None for non-application targets."""
        for prefix in self.application_prefixes:
            normalized = prefix.rstrip("/") + "/"
            if destination.startswith(normalized):
                return "/" + destination[len(normalized) :]
        return None


@dataclass
class _Subscription:
    session: Session
    subscription_id: str
    destination: str


@dataclass
class SimpleBroker:
    """Tracks sessions and subscriptions and routes client frames."""

    pool: DispatchPool
    metrics: AppMetrics
    router: DestinationRouter = field(default_factory=DestinationRouter)
    _sessions: dict[str, Session] = field(default_factory=dict)
    _subscriptions: dict[str, dict[str, _Subscription]] = field(default_factory=dict)
    _handlers: dict[str, Handler] = field(default_factory=dict)
    _message_ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    def register_handler(self, destination: str, handler: Handler) -> None:
        """Route SEND frames for ``/app<destination>`` to ``handler``."""
        self._handlers[destination] = handler

    def application_handler(self, destination: str) -> Callable[[Handler], Handler]:
        """Decorator form of ``register_handler``."""

        def decorator(handler: Handler) -> Handler:
            self.register_handler(destination, handler)
            return handler

        return decorator

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def subscriber_count(self, destination: str) -> int:
        return len(self._subscribers(destination))

    async def handle_text(self, session: Session, text: str) -> None:
        """Parse and handle one frame received from a client."""
        try:
            frame = parse_frame(text)
        except FrameError as exc:
            await self._send_error(session, str(exc))
            return
        if frame is not None:
            await self.handle_frame(session, frame)

    async def handle_frame(  # noqa: PLR0911, PLR0912
        self, session: Session, frame: Frame
    ) -> None:
        """Apply a client frame to the broker state."""
        command = frame.command
        if command in {"CONNECT", "STOMP"}:
            self._sessions[session.session_id] = session
            await session.send(
                Frame(
                    "CONNECTED",
                    {
                        "version": STOMP_VERSION,
                        "heart-beat": "0,0",
                        "server": "doge",
                        "session": session.session_id,
                    },
                ).serialize()
            )
            return
        if session.session_id not in self._sessions:
            await self._send_error(session, "Session is not connected")
            return
        if command == "DISCONNECT":
            await self._send_receipt(session, frame)
            self.disconnect(session)
            await session.close()
            return
        if command == "SUBSCRIBE":
            destination = frame.headers.get("destination")
            subscription_id = frame.headers.get("id")
            if not destination or subscription_id is None:
                await self._send_error(session, "SUBSCRIBE requires destination and id")
                return
            try:
                self.subscribe(session, subscription_id, destination)
            except ValueError as exc:
                await self._send_error(session, str(exc))
                return
        elif command == "UNSUBSCRIBE":
            subscription_id = frame.headers.get("id")
            if subscription_id is None:
                await self._send_error(session, "UNSUBSCRIBE requires id")
                return
            self.unsubscribe(session, subscription_id)
        elif command == "SEND":
            destination = frame.headers.get("destination")
            if not destination:
                await self._send_error(session, "SEND requires destination")
                return
            await self._route_send(session, destination, frame)
        elif command in {"ACK", "NACK", "BEGIN", "COMMIT", "ABORT"}:
            logger.debug("Ignoring %s from session %s", command, session.session_id)
        else:
            await self._send_error(session, f"Unexpected client command: {command}")
            return
        await self._send_receipt(session, frame)

    def subscribe(
        self, session: Session, subscription_id: str, destination: str
    ) -> None:
        """Register a subscription of ``session`` to a broker destination."""
        if not self.router.is_broker_destination(destination):
            raise ValueError(f"Destination not handled by broker: {destination}")
        self._subscriptions.setdefault(session.session_id, {})[subscription_id] = (
            _Subscription(session, subscription_id, destination)
        )

    def unsubscribe(self, session: Session, subscription_id: str) -> None:
        """Drop one subscription; unknown ids are ignored."""
        self._subscriptions.get(session.session_id, {}).pop(subscription_id, None)

    async def publish(
        self,
        destination: str,
        body: str,
        headers: dict[str, str] | None = None,
    ) -> int:
        """Fan a message out to every current subscriber of ``destination``.

        ``headers`` are copied onto each MESSAGE frame; ``content-type``
        defaults to ``text/plain``.
        """
        extra = {"content-type": "text/plain", **(headers or {})}
        subscribers = self._subscribers(destination)
        for subscription in subscribers:
            frame = Frame(
                "MESSAGE",
                {
                    **extra,
                    "destination": destination,
                    "subscription": subscription.subscription_id,
                    "message-id": str(next(self._message_ids)),
                },
                body,
            )
            self.pool.submit(self._deliver, subscription.session, frame.serialize())
        self.metrics.record_broker_messages(len(subscribers))
        return len(subscribers)

    def disconnect(self, session: Session) -> None:
        """Forget a session and all of its subscriptions."""
        self._sessions.pop(session.session_id, None)
        self._subscriptions.pop(session.session_id, None)

    def _subscribers(self, destination: str) -> list[_Subscription]:
        return [
            subscription
            for subscriptions in self._subscriptions.values()
            for subscription in subscriptions.values()
            if subscription.destination == destination
        ]

    async def _route_send(
        self, session: Session, destination: str, frame: Frame
    ) -> None:
        if self.router.is_broker_destination(destination):
            await self.publish(destination, frame.body, _forwarded_headers(frame))
            return
        lookup = self.router.application_destination(destination)
        handler = self._handlers.get(lookup) if lookup is not None else None
        if lookup is None or handler is None:
            logger.debug("No handler for destination %s", destination)
            return
        reply = await handler(
            InboundMessage(
                destination=lookup,
                body=frame.body,
                headers=frame.headers,
                session_id=session.session_id,
            )
        )
        if reply is None:
            return
        if isinstance(reply, str):
            await self.publish(f"/topic{lookup}", reply)
        else:
            await self.publish(
                f"/topic{lookup}",
                json.dumps(reply),
                {"content-type": "application/json"},
            )

    async def _deliver(self, session: Session, text: str) -> None:
        try:
            await session.send(text)
        except Exception:  # noqa: BLE001
            logger.warning(
                "Dropping session %s after failed send",
                session.session_id,
                exc_info=True,
            )
            self.disconnect(session)

    async def _send_receipt(self, session: Session, frame: Frame) -> None:
        receipt = frame.headers.get("receipt")
        if receipt is not None:
            await session.send(Frame("RECEIPT", {"receipt-id": receipt}).serialize())

    async def _send_error(self, session: Session, message: str) -> None:
        logger.info("STOMP error for session %s: %s", session.session_id, message)
        await session.send(
            Frame("ERROR", {"message": message, "content-type": "text/plain"}, message)
            .serialize()
        )


# SEND headers that describe the frame itself rather than the message.
_FRAME_HEADERS = frozenset(
    {"destination", "receipt", "transaction", "content-length", "message-id"}
)


def _forwarded_headers(frame: Frame) -> dict[str, str]:
    return {
        name: value
        for name, value in frame.headers.items()
        if name not in _FRAME_HEADERS
    }
