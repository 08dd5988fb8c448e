"""Room registry shared by every connection of one relay process.

Rooms are created implicitly on first join and removed as soon as the last
member leaves, so the registry never holds empty rooms. One ``asyncio.Lock``
serialises membership changes and snapshotting; sending happens after the
lock is released and only enqueues onto each member's outbound queue.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from .connection import Connection
from .room import Room
from .schemas import RoomSummary


class RoomRegistry:
    """Maps room id → :class:`Room`."""

    def __init__(self) -> None:
        self.log = logging.getLogger("relay.rooms")
        self._rooms: Dict[str, Room] = {}
        self._lock = asyncio.Lock()

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    # -------------------- Mutation -------------------- #

    async def join(self, room_id: str, connection: Connection) -> None:
        """Add *connection* to *room_id*, creating the room if needed."""
        async with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                room = self._rooms[room_id] = Room(room_id)
                self.log.info("Room %r created", room_id)
            if room.add_member(connection):
                self.log.debug("%s joined %r (%d members)", connection.connection_id, room_id, len(room))

    async def leave(self, room_id: str, connection: Connection) -> None:
        """Remove *connection* from *room_id*; drop the room when it empties."""
        async with self._lock:
            room = self._rooms.get(room_id)
            if room is None or not room.remove_member(connection):
                return
            self.log.debug("%s left %r (%d members)", connection.connection_id, room_id, len(room))
            if room.is_empty():
                del self._rooms[room_id]
                self.log.info("Room %r removed", room_id)

    # -------------------- Broadcast -------------------- #

    async def broadcast(self, room_id: str, payload: dict, exclude: Optional[Connection] = None) -> int:
        """Queue *payload* for every ready member of *room_id* except *exclude*.

        Members that are closed or not ready are skipped; they are removed
        only by their own session's ``leave``. Returns the number of members
        the payload was queued for.
        """
        async with self._lock:
            room = self._rooms.get(room_id)
            members = room.snapshot() if room is not None else []

        delivered = 0
        for member in members:
            if member is exclude or not member.is_ready:
                continue
            if member.send(payload):
                delivered += 1
        return delivered

    # -------------------- Read helpers -------------------- #

    async def members(self, room_id: str) -> List[Connection]:
        async with self._lock:
            room = self._rooms.get(room_id)
            return room.snapshot() if room is not None else []

    async def member_count(self, room_id: str) -> int:
        async with self._lock:
            room = self._rooms.get(room_id)
            return len(room) if room is not None else 0

    async def room_ids(self) -> List[str]:
        async with self._lock:
            return list(self._rooms)

    async def summaries(self) -> List[RoomSummary]:
        async with self._lock:
            return [RoomSummary(room_id=rid, member_count=len(room)) for rid, room in self._rooms.items()]


__all__ = ["RoomRegistry"]
