"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from functools import lru_cache

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_session
from services.auth import AuthGate, UserIdentity, extract_bearer_token
from services.feed import FeedService, SqlPostRepository


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


@lru_cache
def get_auth_gate() -> AuthGate:
    return AuthGate()


async def get_current_identity(
    authorization: str | None = Header(default=None),
    gate: AuthGate = Depends(get_auth_gate),
) -> UserIdentity:
    return gate.authenticate(extract_bearer_token(authorization))


async def get_feed_service(session: AsyncSession = Depends(get_db)) -> FeedService:
    return FeedService(SqlPostRepository(session))
