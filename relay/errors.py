"""Error taxonomy for the relay core.

Every error here is recovered inside the connection that raised it. Errors
carrying a ``code`` are reported to the originating client as an ``error``
frame; :class:`ProtocolError` is never reported, the offending frame is simply
dropped.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from .constants import INVALID_TOKEN, MESSAGE_TOO_LONG, RATE_LIMIT_EXCEEDED

if TYPE_CHECKING:
    from .rate_limit import PenaltyInfo


class RelayError(Exception):
    """Base class for everything the relay raises on purpose."""

    code: Optional[str] = None


class ProtocolError(RelayError):
    """Inbound frame could not be decoded or is not a known request."""


# -----------------------------
# Identity
# -----------------------------

class AuthError(RelayError):
    pass


class InvalidTokenError(AuthError):
    """Credential has a bad signature, is expired or is malformed."""

    code = INVALID_TOKEN


# -----------------------------
# Validation
# -----------------------------

class ValidationError(RelayError):
    pass


class MessageTooLongError(ValidationError):
    """Chat text is absent or exceeds the configured maximum length."""

    code = MESSAGE_TOO_LONG


# -----------------------------
# Throttling
# -----------------------------

class ThrottleError(RelayError):
    pass


class RateLimitExceededError(ThrottleError):
    """The connection's limiter refused a chat message."""

    code = RATE_LIMIT_EXCEEDED

    def __init__(self, penalty: Optional["PenaltyInfo"] = None):
        super().__init__(RATE_LIMIT_EXCEEDED)
        self.penalty = penalty


__all__ = [
    "RelayError",
    "ProtocolError",
    "AuthError",
    "InvalidTokenError",
    "ValidationError",
    "MessageTooLongError",
    "ThrottleError",
    "RateLimitExceededError",
]
