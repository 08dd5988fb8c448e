from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from tortoise.contrib.fastapi import RegisterTortoise

from .archive import MessageArchive, NullArchive, TortoiseArchive
from .config import RelaySettings, get_settings
from .routers import rooms as rooms_router
from .routers import websockets as ws_router
from .state import RelayServices

logger = logging.getLogger("relay.app")


def create_app(settings: Optional[RelaySettings] = None) -> FastAPI:
    """Build a relay app with its own registry and services.

    The message archive is backed by Tortoise ORM only when
    ``settings.archive_db_url`` is set.
    """
    settings = settings or get_settings()
    archive: MessageArchive = TortoiseArchive() if settings.archive_db_url else NullArchive()
    services = RelayServices.from_settings(settings, archive=archive)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if not settings.archive_db_url:
            yield
            return
        async with RegisterTortoise(
            app,
            db_url=settings.archive_db_url,
            modules={"models": ["relay.models"]},
            generate_schemas=True,
            add_exception_handlers=True,
        ):
            logger.info("Message archive enabled")
            yield
            await services.archive.drain()

    app = FastAPI(title="Room Relay", lifespan=lifespan)
    app.state.relay = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router.router)
    app.include_router(ws_router.router)
    return app


__all__ = ["create_app"]
