"""A single client's live WebSocket and its outbound frame queue."""
from __future__ import annotations

import asyncio
import logging
import secrets
from typing import Optional

from fastapi import WebSocket
from fastapi.websockets import WebSocketState

from .constants import ANONYMOUS
from .rate_limit import RateLimiter

logger = logging.getLogger("relay.connection")


class Connection:
    """Wraps the transport handle plus per-connection relay state.

    Frames are never written to the socket directly by other connections:
    :meth:`send` only enqueues, and a dedicated writer task drains the queue.
    A peer that stops reading therefore fills its own queue and starts losing
    frames instead of stalling everybody else.
    """

    def __init__(self, ws: WebSocket, limiter: RateLimiter, queue_size: int = 64):
        self.ws = ws
        self.connection_id = secrets.token_hex(4)
        self.room_id: Optional[str] = None
        self.name: str = ANONYMOUS
        # True once the name came from a verified token
        self.authenticated: bool = False
        self.limiter: Optional[RateLimiter] = limiter

        self._outbox: "asyncio.Queue[dict]" = asyncio.Queue(maxsize=queue_size)
        self._writer: Optional[asyncio.Task] = None
        self._closed = False

    def __repr__(self) -> str:
        return f"<Connection {self.connection_id} room={self.room_id!r} name={self.name!r}>"

    # -------------------- Transport state -------------------- #

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_ready(self) -> bool:
        """*True* while frames can still be delivered to this client."""
        if self._closed:
            return False
        return (
            self.ws.application_state == WebSocketState.CONNECTED
            and self.ws.client_state == WebSocketState.CONNECTED
        )

    # -------------------- Outbound -------------------- #

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._pump(), name=f"relay-writer-{self.connection_id}")

    def send(self, payload: dict) -> bool:
        """Queue *payload* without waiting; return *False* if it was dropped."""
        if self._closed:
            return False
        try:
            self._outbox.put_nowait(payload)
        except asyncio.QueueFull:
            logger.warning("Outbound queue full for %s; dropping %s frame", self.connection_id, payload.get("type"))
            return False
        return True

    async def _pump(self) -> None:
        while True:
            payload = await self._outbox.get()
            try:
                await self.ws.send_json(payload)
            except Exception as exc:
                logger.debug("Write to %s failed: %s", self.connection_id, exc)
                self._closed = True
                return

    async def close(self) -> None:
        """Stop the writer task. Queued frames that were not written are discarded."""
        self._closed = True
        writer, self._writer = self._writer, None
        if writer is None or writer.done():
            return
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass


__all__ = ["Connection"]
