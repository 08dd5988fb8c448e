"""Fire-and-forget archival of broadcast chat messages.

Archiving is optional: a session always talks to a :class:`MessageArchive`,
which is the no-op :class:`NullArchive` unless a database URL is configured.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Set

from .models import Message

logger = logging.getLogger("relay.archive")


class MessageArchive:
    """Archive sink interface; the base class discards everything."""

    def record(self, room: str, user: str, text: str, timestamp: datetime) -> None:
        return None

    async def drain(self) -> None:
        return None


NullArchive = MessageArchive


class TortoiseArchive(MessageArchive):
    """Writes each message as a :class:`~relay.models.Message` row in the background."""

    def __init__(self) -> None:
        self._pending: Set[asyncio.Task] = set()

    def record(self, room: str, user: str, text: str, timestamp: datetime) -> None:
        task = asyncio.create_task(self._store(room, user, text, timestamp))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _store(self, room: str, user: str, text: str, timestamp: datetime) -> None:
        try:
            await Message.create(room=room, user=user, text=text, timestamp=timestamp)
        except Exception:
            logger.exception("Failed to archive message for room %r", room)

    async def drain(self) -> None:
        """Wait for in-flight writes; called on shutdown."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = ["MessageArchive", "NullArchive", "TortoiseArchive"]
