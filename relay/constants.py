"""Protocol constants and default limits shared across the relay."""

ANONYMOUS = "Anonymous"

# Inbound / outbound frame types
FRAME_JOIN = "join"
FRAME_CHAT = "chat"
FRAME_ERROR = "error"

# Error codes reported back to the originating client
MESSAGE_TOO_LONG = "MESSAGE_TOO_LONG"
RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
INVALID_TOKEN = "INVALID_TOKEN"

# Admission control defaults (all overridable through ``RelaySettings``)
BUCKET_CAPACITY = 5
REFILL_RATE = 1.0  # tokens per second at penalty level 0
PENALTY_MULTIPLIER = 2.0
MAX_PENALTY_LEVEL = 4
PENALTY_DURATION_MS = 30_000
FAILURES_PER_PENALTY = 3

MAX_MESSAGE_LENGTH = 500
MAX_ROOM_ID_LENGTH = 2048  # room ids are usually page URLs

__all__ = [
    "ANONYMOUS",
    "FRAME_JOIN",
    "FRAME_CHAT",
    "FRAME_ERROR",
    "MESSAGE_TOO_LONG",
    "RATE_LIMIT_EXCEEDED",
    "INVALID_TOKEN",
    "BUCKET_CAPACITY",
    "REFILL_RATE",
    "PENALTY_MULTIPLIER",
    "MAX_PENALTY_LEVEL",
    "PENALTY_DURATION_MS",
    "FAILURES_PER_PENALTY",
    "MAX_MESSAGE_LENGTH",
    "MAX_ROOM_ID_LENGTH",
]
