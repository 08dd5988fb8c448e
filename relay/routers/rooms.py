from __future__ import annotations

from typing import List

from fastapi import APIRouter, Request

from ..schemas import HealthResponse, RoomSummary
from ..state import RelayServices

router = APIRouter(prefix="", tags=["rooms"])


def _services(request: Request) -> RelayServices:
    return request.app.state.relay


@router.get("/rooms", response_model=List[RoomSummary])
async def list_rooms(request: Request):
    return await _services(request).registry.summaries()


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    services = _services(request)
    return HealthResponse(rooms=len(services.registry), connections=services.connections)
