"""Join-time identity resolution.

A client may present a signed JWT in its ``join`` frame. The resolver checks
the signature against the process secret and derives the display name from
the ``username`` claim. No token means an anonymous join.
"""
from __future__ import annotations

import logging
import time
from typing import Any, List, Optional, Sequence

import jwt

from .constants import ANONYMOUS
from .errors import InvalidTokenError

logger = logging.getLogger("relay.identity")

# -----------------------------
# Resolver
# -----------------------------


class IdentityResolver:
    """Turn an optional bearer credential into a display name."""

    def __init__(self, secret: Optional[str], algorithms: Sequence[str] = ("HS256",)):
        self._secret = secret
        self.algorithms: List[str] = list(algorithms)

    def resolve(self, token: Any) -> str:
        """Return the display name carried by *token*.

        Raises
        ------
        InvalidTokenError
            If the token is malformed, expired or signed with another key.
        """
        if token is None or token == "":
            return ANONYMOUS
        if not isinstance(token, str):
            logger.warning("Rejecting token: not a string (%s)", type(token).__name__)
            raise InvalidTokenError("token is not a string")
        if not self._secret:
            logger.warning("Rejecting token: no JWT secret configured")
            raise InvalidTokenError("no secret configured")

        try:
            claims = jwt.decode(token, self._secret, algorithms=self.algorithms)
        except jwt.PyJWTError as exc:
            logger.warning("Rejecting token: %s (%s)", exc, type(exc).__name__)
            raise InvalidTokenError(str(exc)) from exc

        username = claims.get("username")
        if not isinstance(username, str) or not username.strip():
            return ANONYMOUS
        return username

    def issue_token(self, username: str, expires_in: Optional[float] = None) -> str:
        """Sign a token for *username*; used by operator tooling and tests."""
        if not self._secret:
            raise RuntimeError("Cannot issue tokens without a JWT secret")
        now = int(time.time())
        claims = {"username": username, "iat": now}
        if expires_in is not None:
            claims["exp"] = now + int(expires_in)
        return jwt.encode(claims, self._secret, algorithm=self.algorithms[0])


__all__ = ["IdentityResolver"]
