"""Real-time ``/doge`` endpoint: WebSocket with a long-polling fallback."""

from __future__ import annotations

import logging
import secrets
from typing import TYPE_CHECKING
from uuid import uuid4

from fastapi import (
    APIRouter,
    HTTPException,
    Request,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from doge.messaging.transports import (
    SockJSWebSocketSession,
    WebSocketSession,
    decode_sockjs_messages,
)

if TYPE_CHECKING:
    from doge.containers import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doge", tags=["realtime"])

STOMP_SUBPROTOCOLS = ("v12.stomp", "v11.stomp", "v10.stomp")
_SOCKJS_MEDIA_TYPE = "application/javascript; charset=UTF-8"


@router.websocket("")
@router.websocket("/websocket")
async def stomp_websocket(websocket: WebSocket) -> None:
    """Native WebSocket transport: each text message is one STOMP frame."""
    container: AppContainer = websocket.app.state.container
    offered = websocket.scope.get("subprotocols") or []
    subprotocol = next((name for name in STOMP_SUBPROTOCOLS if name in offered), None)
    await websocket.accept(subprotocol=subprotocol)
    session = WebSocketSession(websocket=websocket, session_id=uuid4().hex)
    try:
        while not session.closed:
            text = await websocket.receive_text()
            await container.broker.handle_text(session, text)
    except WebSocketDisconnect:
        logger.debug("WebSocket session %s disconnected", session.session_id)
    finally:
        container.broker.disconnect(session)


@router.get("/info")
async def sockjs_info() -> dict[str, object]:
    """Describe the transports available to SockJS clients."""
    return {
        "websocket": True,
        "cookie_needed": False,
        "origins": ["*:*"],
        "entropy": secrets.randbits(31),
    }


@router.websocket("/{server_id}/{session_id}/websocket")
async def sockjs_websocket(
    websocket: WebSocket, server_id: str, session_id: str
) -> None:
    """SockJS WebSocket transport: frames travel inside JSON arrays."""
    container: AppContainer = websocket.app.state.container
    await websocket.accept()
    session = SockJSWebSocketSession(websocket=websocket, session_id=uuid4().hex)
    await session.open()
    try:
        while not session.closed:
            payload = await websocket.receive_text()
            try:
                messages = decode_sockjs_messages(payload)
            except ValueError:
                logger.info("Closing SockJS session %s: bad payload", session_id)
                await session.close()
                break
            for text in messages:
                await container.broker.handle_text(session, text)
    except WebSocketDisconnect:
        logger.debug("SockJS session %s disconnected", session_id)
    finally:
        container.broker.disconnect(session)


@router.post("/{server_id}/{session_id}/xhr")
async def sockjs_poll(server_id: str, session_id: str, request: Request) -> Response:
    """Long poll for queued frames, opening the session on first use."""
    container: AppContainer = request.app.state.container
    session = container.polling_sessions.get_or_create(session_id)
    body = await session.poll(container.settings.polling_timeout_seconds)
    return Response(content=body, media_type=_SOCKJS_MEDIA_TYPE)


@router.post("/{server_id}/{session_id}/xhr_send")
async def sockjs_send(server_id: str, session_id: str, request: Request) -> Response:
    """Deliver client frames sent over the polling transport."""
    container: AppContainer = request.app.state.container
    session = container.polling_sessions.get(session_id)
    if session is None or session.closed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    try:
        messages = decode_sockjs_messages((await request.body()).decode("utf-8"))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Broken JSON encoding."
        ) from exc
    session.touch()
    for text in messages:
        await container.broker.handle_text(session, text)
    return Response(status_code=status.HTTP_204_NO_CONTENT, media_type="text/plain")
