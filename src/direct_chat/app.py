from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from direct_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from direct_chat.api.middleware.metrics import RequestTimingMiddleware
from direct_chat.api.v1.routers import (
    conversations,
    health,
    messages,
    profiles,
    typing,
    ws,
)
from direct_chat.application.exceptions import (
    InvalidArgumentError,
    NotAMemberError,
    NotFoundError,
    TransientStoreError,
)
from direct_chat.config import settings
from direct_chat.domain.value_objects.enums import Collection
from direct_chat.infrastructure.bus.redis_pubsub import RedisChangeFeed
from direct_chat.logging_config import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    # one listener per collection fans changes out to local WS connections
    feed = RedisChangeFeed(app.state.redis, settings.CHANGE_FEED_CHANNEL_PREFIX)
    manager = ws.get_manager()
    app.state.change_feed = feed
    app.state.feed_subscriptions = [
        await feed.subscribe(collection, manager.dispatch) for collection in Collection
    ]

    yield

    for subscription in app.state.feed_subscriptions:
        await subscription.close()
    app.state.feed_subscriptions = []
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Direct Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(typing.router)
    app.include_router(profiles.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(NotAMemberError)
    async def _not_a_member(_req: Request, exc: NotAMemberError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(InvalidArgumentError)
    async def _invalid(_req: Request, exc: InvalidArgumentError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(TransientStoreError)
    async def _transient(_req: Request, exc: TransientStoreError) -> JSONResponse:
        logger.warning("Store unavailable: %s", exc.detail)
        return JSONResponse(status_code=503, content={"detail": "Store unavailable"})

    @app.exception_handler(SQLAlchemyError)
    async def _db_error(_req: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.warning("Database error: %s", exc)
        return JSONResponse(status_code=503, content={"detail": "Store unavailable"})
