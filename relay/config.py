"""Runtime configuration loaded from ``RELAY_*`` environment variables."""
from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import constants


class RelaySettings(BaseSettings):
    """All tunables of the relay process.

    Every field can be overridden with an environment variable carrying the
    ``RELAY_`` prefix, e.g. ``RELAY_JWT_SECRET`` or ``RELAY_BUCKET_CAPACITY``.
    """

    model_config = SettingsConfigDict(env_prefix="RELAY_", case_sensitive=False, extra="ignore")

    # --- Process / transport --- #
    host: str = Field(default="0.0.0.0", description="Bind address for python -m relay")
    port: int = Field(default=3000, description="Listen port for python -m relay")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    # --- Identity --- #
    jwt_secret: Optional[SecretStr] = Field(default=None, description="Shared secret used to verify join tokens")
    jwt_algorithms: List[str] = Field(default_factory=lambda: ["HS256"])

    # --- Admission control --- #
    rate_limit_policy: Literal["adaptive", "sliding_window"] = "adaptive"
    bucket_capacity: int = constants.BUCKET_CAPACITY
    refill_rate: float = constants.REFILL_RATE
    penalty_multiplier: float = constants.PENALTY_MULTIPLIER
    max_penalty_level: int = constants.MAX_PENALTY_LEVEL
    penalty_duration_ms: int = constants.PENALTY_DURATION_MS
    failures_per_penalty: int = constants.FAILURES_PER_PENALTY
    # Sliding-window policy only
    window_max_messages: int = constants.BUCKET_CAPACITY
    window_ms: int = 5_000

    # --- Rooms & messages --- #
    max_message_length: int = constants.MAX_MESSAGE_LENGTH
    max_room_id_length: int = constants.MAX_ROOM_ID_LENGTH
    allow_rejoin: bool = True
    outbound_queue_size: int = Field(default=64, description="Frames buffered per connection before dropping")

    # --- Archive --- #
    archive_db_url: Optional[str] = Field(default=None, description="Tortoise DB URL; archive disabled when unset")

    # --- Logging --- #
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    log_datefmt: Optional[str] = None

    @field_validator(
        "bucket_capacity",
        "failures_per_penalty",
        "window_max_messages",
        "window_ms",
        "max_message_length",
        "max_room_id_length",
        "outbound_queue_size",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("refill_rate")
    @classmethod
    def validate_refill_rate(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("refill_rate must be positive")
        return v

    @field_validator("penalty_multiplier")
    @classmethod
    def validate_multiplier(cls, v: float) -> float:
        # A multiplier below 1 would make the refill rate grow with the penalty level.
        if v < 1:
            raise ValueError("penalty_multiplier must be >= 1")
        return v

    @field_validator("max_penalty_level", "penalty_duration_ms")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @property
    def penalty_duration_s(self) -> float:
        return self.penalty_duration_ms / 1000.0


@lru_cache()
def get_settings() -> RelaySettings:
    """Return the process-wide settings, read once from the environment."""
    return RelaySettings()


__all__ = ["RelaySettings", "get_settings"]
