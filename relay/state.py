"""Runtime services shared by every connection of one app instance.

The app factory builds a single :class:`RelayServices` and stores it on
``app.state.relay``; WebSocket handlers fetch it from there instead of
importing module-level singletons, so each app (and each test) gets its own
registry.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .archive import MessageArchive, NullArchive
from .config import RelaySettings
from .identity import IdentityResolver
from .registry import RoomRegistry


@dataclass
class RelayServices:
    settings: RelaySettings
    registry: RoomRegistry
    resolver: IdentityResolver
    archive: MessageArchive = field(default_factory=NullArchive)
    # Live WebSocket count, touched only from the event loop thread
    connections: int = 0

    @classmethod
    def from_settings(cls, settings: RelaySettings, archive: Optional[MessageArchive] = None) -> "RelayServices":
        secret = settings.jwt_secret.get_secret_value() if settings.jwt_secret else None
        return cls(
            settings=settings,
            registry=RoomRegistry(),
            resolver=IdentityResolver(secret, settings.jwt_algorithms),
            archive=archive if archive is not None else NullArchive(),
        )


__all__ = ["RelayServices"]
