"""Per-connection admission control.

Two policies share the same surface (``try_consume`` / ``penalty_info``) so a
session never needs to know which one it was handed:

* :class:`AdaptiveRateLimiter` -- a token bucket whose refill rate halves
  (by default) for every penalty level. Three consecutive refusals raise the
  level by one; the level decays back to zero once ``penalty_duration`` has
  passed since the last escalation.
* :class:`SlidingWindowLimiter` -- refuses when more than ``max_messages``
  were accepted within the trailing window.

Instances are owned by a single connection and are not thread/task safe.
"""
from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Deque, Optional, Protocol

from . import constants

if TYPE_CHECKING:
    from .config import RelaySettings

logger = logging.getLogger("relay.rate_limit")

Clock = Callable[[], float]


@dataclass(frozen=True)
class PenaltyInfo:
    """Back-off hint sent to a throttled client."""

    level: int
    wait_seconds: int

    def as_payload(self) -> dict:
        return {"level": self.level, "waitSeconds": self.wait_seconds}


class RateLimiter(Protocol):
    def try_consume(self) -> bool: ...

    def penalty_info(self) -> Optional[PenaltyInfo]: ...


# -----------------------------
# Adaptive penalty bucket
# -----------------------------

class AdaptiveRateLimiter:
    """Token bucket with escalating, self-decaying penalties."""

    def __init__(
        self,
        capacity: int = constants.BUCKET_CAPACITY,
        refill_rate: float = constants.REFILL_RATE,
        penalty_multiplier: float = constants.PENALTY_MULTIPLIER,
        max_penalty: int = constants.MAX_PENALTY_LEVEL,
        penalty_duration: float = constants.PENALTY_DURATION_MS / 1000.0,
        failures_per_penalty: int = constants.FAILURES_PER_PENALTY,
        clock: Clock = time.monotonic,
    ) -> None:
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.penalty_multiplier = penalty_multiplier
        self.max_penalty = max_penalty
        self.penalty_duration = penalty_duration
        self.failures_per_penalty = failures_per_penalty
        self._clock = clock

        now = clock()
        self.tokens: float = float(capacity)
        self.last_refill: float = now
        self.penalty_level: int = 0
        self.last_penalty: float = now
        self.consecutive_failures: int = 0

    def _rate_for(self, level: int) -> float:
        return self.refill_rate / (self.penalty_multiplier ** level)

    def _penalty_expired(self, now: float) -> bool:
        return self.penalty_level > 0 and (now - self.last_penalty) > self.penalty_duration

    @property
    def current_rate(self) -> float:
        """Refill rate in tokens/second for the current penalty level."""
        return self._rate_for(self.penalty_level)

    def _refill(self, now: float) -> None:
        elapsed = max(0.0, now - self.last_refill)
        if self._penalty_expired(now):
            logger.debug("Penalty level %s decayed", self.penalty_level)
            self.penalty_level = 0
            self.consecutive_failures = 0
        self.tokens = min(float(self.capacity), self.tokens + elapsed * self.current_rate)
        self.last_refill = now

    def try_consume(self) -> bool:
        """Take one token; return *False* (and record a strike) when none is left."""
        now = self._clock()
        self._refill(now)

        if self.tokens >= 1:
            self.tokens -= 1
            self.consecutive_failures = 0
            return True

        self.consecutive_failures += 1
        if self.consecutive_failures >= self.failures_per_penalty:
            self.penalty_level = min(self.max_penalty, self.penalty_level + 1)
            self.last_penalty = now
            self.consecutive_failures = 0
            logger.info("Penalty escalated to level %s", self.penalty_level)
        return False

    def penalty_info(self) -> Optional[PenaltyInfo]:
        """Describe the active penalty without touching bucket state."""
        now = self._clock()
        level = 0 if self._penalty_expired(now) else self.penalty_level
        if level == 0:
            return None

        rate = self._rate_for(level)
        elapsed = max(0.0, now - self.last_refill)
        tokens = min(float(self.capacity), self.tokens + elapsed * rate)
        wait = 0 if tokens >= 1 else math.ceil((1 - tokens) / rate)
        return PenaltyInfo(level=level, wait_seconds=wait)


# -----------------------------
# Sliding window counter
# -----------------------------

class SlidingWindowLimiter:
    """Reject once ``max_messages`` were accepted within the last ``window_ms``."""

    def __init__(self, max_messages: int, window_ms: int, clock: Clock = time.monotonic) -> None:
        self.max_messages = max_messages
        self.window = window_ms / 1000.0
        self._clock = clock
        self._stamps: Deque[float] = deque()

    def try_consume(self) -> bool:
        now = self._clock()
        while self._stamps and now - self._stamps[0] >= self.window:
            self._stamps.popleft()
        if len(self._stamps) >= self.max_messages:
            return False
        self._stamps.append(now)
        return True

    def penalty_info(self) -> Optional[PenaltyInfo]:
        return None


def build_rate_limiter(settings: "RelaySettings", clock: Clock = time.monotonic) -> RateLimiter:
    """Create a fresh limiter for one connection according to *settings*."""
    if settings.rate_limit_policy == "sliding_window":
        return SlidingWindowLimiter(settings.window_max_messages, settings.window_ms, clock=clock)
    return AdaptiveRateLimiter(
        capacity=settings.bucket_capacity,
        refill_rate=settings.refill_rate,
        penalty_multiplier=settings.penalty_multiplier,
        max_penalty=settings.max_penalty_level,
        penalty_duration=settings.penalty_duration_s,
        failures_per_penalty=settings.failures_per_penalty,
        clock=clock,
    )


__all__ = [
    "PenaltyInfo",
    "RateLimiter",
    "AdaptiveRateLimiter",
    "SlidingWindowLimiter",
    "build_rate_limiter",
]
