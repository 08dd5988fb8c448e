"""Pydantic data schemas for relay frames and HTTP responses.

Inbound frames are validated into :class:`JoinRequest` / :class:`ChatRequest`
only after the ``type`` discriminator has been read, so an unknown frame type
never reaches pydantic.
"""
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .constants import ANONYMOUS

# -----------------------------
# Inbound frames
# -----------------------------


class JoinRequest(BaseModel):
    """``{"type": "join", "url": "<roomId>", "token": "<optional credential>"}``"""

    model_config = ConfigDict(extra="ignore")

    type: Literal["join"] = "join"
    url: str = Field(min_length=1)
    token: Any = None


class ChatRequest(BaseModel):
    """``{"type": "chat", "user": "<optional name>", "text": "<message>"}``

    ``text`` is left loosely typed on purpose: a missing or non-string text is
    reported as ``MESSAGE_TOO_LONG`` by the session rather than as a
    protocol error.
    """

    model_config = ConfigDict(extra="ignore")

    type: Literal["chat"] = "chat"
    user: Optional[str] = None
    text: Any = None


# -----------------------------
# Outbound frames
# -----------------------------


class PenaltyPayload(BaseModel):
    level: int
    waitSeconds: int


class ChatFrame(BaseModel):
    type: Literal["chat"] = "chat"
    user: str = ANONYMOUS
    text: str


class ErrorFrame(BaseModel):
    type: Literal["error"] = "error"
    code: str
    user: str = ANONYMOUS
    penalty: Optional[PenaltyPayload] = None

    def to_payload(self) -> dict:
        # ``penalty`` is omitted entirely rather than sent as null
        return self.model_dump(exclude_none=True)


# -----------------------------
# HTTP responses
# -----------------------------


class RoomSummary(BaseModel):
    room_id: str
    member_count: int


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    rooms: int
    connections: int


__all__ = [
    "JoinRequest",
    "ChatRequest",
    "PenaltyPayload",
    "ChatFrame",
    "ErrorFrame",
    "RoomSummary",
    "HealthResponse",
]
