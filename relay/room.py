from __future__ import annotations

import time
from typing import List, Set

from .connection import Connection

# NOTE: ``Room`` only tracks membership. Locking lives in ``RoomRegistry``;
# nothing here is safe to call outside the registry lock.


class Room:
    """A named broadcast group and its live member connections."""

    def __init__(self, room_id: str):
        self.room_id = room_id
        self.members: Set[Connection] = set()
        self.created_at: float = time.time()

    def __len__(self) -> int:
        return len(self.members)

    def __contains__(self, connection: object) -> bool:
        return connection in self.members

    # -------------------- Member management -------------------- #

    def add_member(self, connection: Connection) -> bool:
        """Add *connection*; return *False* if it was already a member."""
        if connection in self.members:
            return False
        self.members.add(connection)
        return True

    def remove_member(self, connection: Connection) -> bool:
        """Remove *connection*; return *False* if it was not a member."""
        if connection not in self.members:
            return False
        self.members.discard(connection)
        return True

    def is_empty(self) -> bool:
        return not self.members

    def snapshot(self) -> List[Connection]:
        """Copy of the member set that stays valid after the lock is released."""
        return list(self.members)

__all__ = ["Room"]
