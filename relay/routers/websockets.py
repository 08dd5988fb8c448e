from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket

from ..connection import Connection
from ..rate_limit import build_rate_limiter
from ..session import ConnectionSession
from ..state import RelayServices

router = APIRouter(prefix="", tags=["ws"])

logger = logging.getLogger("relay.ws")


@router.websocket("/")
@router.websocket("/ws")
async def relay_ws_endpoint(ws: WebSocket):
    services: RelayServices = ws.app.state.relay
    settings = services.settings

    await ws.accept()
    connection = Connection(ws, build_rate_limiter(settings), queue_size=settings.outbound_queue_size)
    session = ConnectionSession(
        connection,
        services.registry,
        services.resolver,
        settings,
        archive=services.archive,
    )
    connection.start()
    services.connections += 1
    logger.info("%s connected from %s", connection.connection_id, ws.client)

    try:
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue
            await session.handle_text(raw)
    finally:
        services.connections -= 1
        await session.close()
