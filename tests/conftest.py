import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.websockets import WebSocketState

from relay.config import RelaySettings
from relay.connection import Connection
from relay.identity import IdentityResolver
from relay.rate_limit import build_rate_limiter
from relay.registry import RoomRegistry

SECRET = "relay-test-secret-0123456789abcdef"


class FakeClock:
    """Manually advanced replacement for ``time.monotonic``."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_ws(ready: bool = True) -> MagicMock:
    ws = MagicMock()
    ws.application_state = WebSocketState.CONNECTED if ready else WebSocketState.DISCONNECTED
    ws.client_state = WebSocketState.CONNECTED
    ws.send_json = AsyncMock()
    ws.close = AsyncMock()
    return ws


def drain_outbox(conn: Connection) -> list:
    """Frames queued for *conn* that its writer has not sent yet."""
    frames = []
    while True:
        try:
            frames.append(conn._outbox.get_nowait())
        except asyncio.QueueEmpty:
            return frames


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> RelaySettings:
    return RelaySettings(jwt_secret=SECRET)


@pytest.fixture
def registry() -> RoomRegistry:
    return RoomRegistry()


@pytest.fixture
def resolver() -> IdentityResolver:
    return IdentityResolver(SECRET)


@pytest.fixture
def make_connection(settings, clock):
    def _make(ready: bool = True, limiter=None) -> Connection:
        return Connection(make_ws(ready), limiter or build_rate_limiter(settings, clock=clock))

    return _make


@pytest.fixture
def outbox():
    return drain_outbox
