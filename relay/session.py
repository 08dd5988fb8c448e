"""Per-connection dispatch state machine.

A session starts ``UNJOINED``. A successful ``join`` moves it to ``JOINED``;
``chat`` frames are only acted upon once joined. Teardown is reachable from
either state through :meth:`ConnectionSession.close`, which runs once.

Transition table
----------------
========== ======== ==========================================================
state      frame    outcome
========== ======== ==========================================================
UNJOINED   join     resolve identity; ``INVALID_TOKEN`` or register → JOINED
UNJOINED   chat     ignored
JOINED     join     move to the new room (``allow_rejoin``) or ignored
JOINED     chat     length check → rate limit → sanitize → broadcast
any        close    leave room, drop limiter, stop writer
========== ======== ==========================================================
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

import pydantic

from .archive import MessageArchive, NullArchive
from .config import RelaySettings
from .connection import Connection
from .constants import FRAME_CHAT, FRAME_JOIN
from .errors import (
    MessageTooLongError,
    ProtocolError,
    RateLimitExceededError,
    RelayError,
)
from .identity import IdentityResolver
from .registry import RoomRegistry
from .sanitizer import sanitize
from .schemas import ChatFrame, ChatRequest, ErrorFrame, JoinRequest, PenaltyPayload


class SessionState(str, Enum):
    UNJOINED = "unjoined"
    JOINED = "joined"


def decode_frame(raw: Union[str, bytes]) -> dict:
    """Parse one inbound frame into a JSON object.

    Raises
    ------
    ProtocolError
        If *raw* is not UTF-8, not JSON, or not a JSON object.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ProtocolError("frame is not valid UTF-8") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ProtocolError(f"frame is not valid JSON: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise ProtocolError("frame is not a JSON object")
    return data


class ConnectionSession:
    """Drives one :class:`Connection` through join / chat / close."""

    def __init__(
        self,
        connection: Connection,
        registry: RoomRegistry,
        resolver: IdentityResolver,
        settings: RelaySettings,
        archive: Optional[MessageArchive] = None,
    ):
        self.connection = connection
        self.registry = registry
        self.resolver = resolver
        self.settings = settings
        self.archive = archive if archive is not None else NullArchive()
        self.state = SessionState.UNJOINED
        self.log = logging.getLogger("relay.session")
        self._closed = False

    # ---------------------------------------------------------------------
    # Inbound
    # ---------------------------------------------------------------------

    async def handle_text(self, raw: Union[str, bytes]) -> None:
        """Decode and dispatch one frame; malformed frames are dropped."""
        try:
            data = decode_frame(raw)
            await self.dispatch(data)
        except ProtocolError as exc:
            self.log.debug("Dropping frame from %s: %s", self.connection.connection_id, exc)

    async def dispatch(self, data: dict) -> None:
        msg_type = data.get("type")
        try:
            if msg_type == FRAME_JOIN:
                await self.handle_join(data)
            elif msg_type == FRAME_CHAT:
                await self.handle_chat(data)
            else:
                raise ProtocolError(f"unknown frame type {msg_type!r}")
        except ProtocolError:
            raise
        except RelayError as exc:
            self.reply_error(exc, self.display_name(data.get("user")))

    async def handle_join(self, data: dict) -> None:
        try:
            request = JoinRequest.model_validate(data)
        except pydantic.ValidationError as exc:
            raise ProtocolError("invalid join frame") from exc

        room_id = request.url
        if len(room_id) > self.settings.max_room_id_length:
            raise ProtocolError("room id too long")

        conn = self.connection
        if self.state is SessionState.JOINED:
            if not self.settings.allow_rejoin or room_id == conn.room_id:
                self.log.debug("Ignoring join of %r from %s", room_id, conn.connection_id)
                return

        # Raises InvalidTokenError before any room state is touched
        name = self.resolver.resolve(request.token)

        if conn.room_id is not None:
            await self.registry.leave(conn.room_id, conn)
        conn.name = name
        conn.authenticated = bool(request.token)
        await self.registry.join(room_id, conn)
        conn.room_id = room_id
        self.state = SessionState.JOINED
        self.log.info("%s joined %r as %r", conn.connection_id, room_id, name)

    async def handle_chat(self, data: dict) -> None:
        if self.state is not SessionState.JOINED:
            self.log.debug("Ignoring chat from unjoined %s", self.connection.connection_id)
            return
        try:
            request = ChatRequest.model_validate(data)
        except pydantic.ValidationError as exc:
            raise ProtocolError("invalid chat frame") from exc

        text: Any = request.text
        # Length is checked before the limiter so oversized messages cost no token
        if not isinstance(text, str) or not text or len(text) > self.settings.max_message_length:
            raise MessageTooLongError()

        conn = self.connection
        limiter = conn.limiter
        if limiter is None:
            return
        if not limiter.try_consume():
            self.log.debug("Rate limited %s", conn.connection_id)
            raise RateLimitExceededError(limiter.penalty_info())

        user = self.display_name(request.user)
        safe_text = sanitize(text)
        frame = ChatFrame(user=user, text=safe_text).model_dump()
        await self.registry.broadcast(conn.room_id, frame, exclude=conn)
        self.archive.record(conn.room_id, user, safe_text, datetime.now(timezone.utc))

    # ---------------------------------------------------------------------
    # Outbound
    # ---------------------------------------------------------------------

    def display_name(self, claimed: Any = None) -> str:
        """Name shown on frames sent on behalf of this connection.

        A name taken from a verified token cannot be overridden by the
        ``user`` field of a chat frame.
        """
        conn = self.connection
        if conn.authenticated:
            return conn.name
        if isinstance(claimed, str) and claimed.strip():
            return claimed
        return conn.name

    def reply_error(self, exc: RelayError, user: str) -> None:
        penalty = getattr(exc, "penalty", None)
        frame = ErrorFrame(
            code=exc.code,
            user=user,
            penalty=PenaltyPayload(**penalty.as_payload()) if penalty is not None else None,
        )
        self.connection.send(frame.to_payload())

    # ---------------------------------------------------------------------
    # Teardown
    # ---------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Deregister and release per-connection state. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        conn = self.connection
        if conn.room_id is not None:
            await self.registry.leave(conn.room_id, conn)
            conn.room_id = None
        conn.limiter = None
        await conn.close()
        self.log.info("%s disconnected", conn.connection_id)


__all__ = ["SessionState", "ConnectionSession", "decode_frame"]
