"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.error_handlers import register_error_handlers
from api.v1 import api_router
from core import settings, setup_logging
from db.session import async_engine
from services import RateLimitMiddleware, get_rate_limiter

HEALTH_PATH = "/"


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    try:
        yield
    finally:
        await async_engine.dispose()


def create_app() -> FastAPI:
    setup_logging(settings.log_level, settings.log_format)

    application = FastAPI(title="socialfeed", lifespan=lifespan)
    application.add_middleware(
        RateLimitMiddleware,
        limiter_factory=get_rate_limiter,
        exempt_paths={HEALTH_PATH},
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(application)
    application.include_router(api_router, prefix=settings.api_prefix)

    @application.get(HEALTH_PATH, include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return application
