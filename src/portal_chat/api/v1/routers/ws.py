from __future__ import annotations

import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from portal_chat.api.deps import TOKEN_ERRORS, get_verifier
from portal_chat.application.dto.principal import Principal
from portal_chat.config import settings
from portal_chat.infrastructure.ws.connection import Connection
from portal_chat.infrastructure.ws.engine import DeliveryEngine

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


async def _authenticate(token: str | None) -> Principal | None:
    if not token:
        return None
    try:
        return await get_verifier().verify(token)
    except TOKEN_ERRORS:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket(settings.WS_PATH)
async def ws_chat(
    websocket: WebSocket,
    token: str | None = Query(None),
) -> None:
    # The session is verified here; the auth envelope can only confirm it.
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=settings.WS_AUTH_CLOSE_CODE, reason="Authentication failed")
        return

    engine: DeliveryEngine = websocket.app.state.delivery_engine
    await websocket.accept()
    conn = engine.open(websocket, principal)
    try:
        await _read_loop(websocket, engine, conn)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %r", conn)
    finally:
        engine.close(conn)


async def _read_loop(ws: WebSocket, engine: DeliveryEngine, conn: Connection) -> None:
    while True:
        message = await ws.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000))
        raw = message.get("text")
        if raw is None:
            raw = message.get("bytes") or b""
        await engine.handle(conn, raw)
