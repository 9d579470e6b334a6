"""Redis-backed rate limiting utilities."""

from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Callable, Iterable, Protocol, runtime_checkable

from fastapi import status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.types import ASGIApp

from core import ACCESS_TOKEN_TYPE, decode_token, settings
from services.auth.gate import extract_bearer_token

logger = logging.getLogger(__name__)


@runtime_checkable
class SupportsRateLimitClient(Protocol):
    async def incr(self, key: str) -> int: ...

    async def expire(self, key: str, ttl: int) -> None: ...


def _auth_path_prefix() -> str:
    return f"{settings.api_prefix.rstrip('/')}/auth"


def _extract_subject_from_token(token: str) -> str | None:
    try:
        payload = decode_token(token)
    except ValueError:
        return None

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        return None

    subject = payload.get("sub")
    if isinstance(subject, str):
        normalized = subject.strip()
        return normalized or None
    return None


def default_client_identifier(request: Request) -> str:
    """Resolve a stable client identifier for rate limiting."""
    bearer_token = extract_bearer_token(request.headers.get("authorization"))
    if bearer_token:
        subject = _extract_subject_from_token(bearer_token)
        if subject:
            return f"user:{subject}"

    host = request.client.host if request.client else None
    if host:
        return host

    return "anonymous"


class RateLimiter:
    """Simple fixed-window rate limiter backed by Redis."""

    def __init__(
        self,
        redis_client: SupportsRateLimitClient,
        limit: int,
        window_seconds: int,
        prefix: str = "rate-limit",
    ) -> None:
        self.redis = redis_client
        self.limit = max(limit, 0)
        self.window_seconds = max(window_seconds, 0)
        self.prefix = prefix

    async def allow(self, key: str) -> bool:
        """Return True when the request should be allowed, False if limited."""
        if self.limit == 0 or self.window_seconds == 0:
            return True

        bucket = int(time.time()) // self.window_seconds
        redis_key = f"{self.prefix}:{key}:{bucket}"

        count = await self.redis.incr(redis_key)
        if count == 1:
            await self.redis.expire(redis_key, self.window_seconds)
        return count <= self.limit


@lru_cache
def get_redis_client() -> SupportsRateLimitClient:
    """Return a cached async Redis client."""
    return Redis.from_url(settings.redis_url, decode_responses=False)


_cached_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Singleton accessor for the shared rate limiter."""
    global _cached_rate_limiter
    if _cached_rate_limiter is None:
        _cached_rate_limiter = RateLimiter(
            redis_client=get_redis_client(),
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    return _cached_rate_limiter


def set_rate_limiter(limiter: RateLimiter | None) -> None:
    """Override the cached rate limiter (primarily for tests)."""
    global _cached_rate_limiter
    _cached_rate_limiter = limiter


def _is_auth_path(path: str) -> bool:
    prefix = _auth_path_prefix()
    return path == prefix or path.startswith(f"{prefix}/")


def _service_unavailable() -> JSONResponse:
    return JSONResponse(
        {"message": "Service unavailable"},
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that enforces the configured rate limits."""

    def __init__(
        self,
        app: ASGIApp,
        limiter_factory: Callable[[], RateLimiter],
        exempt_paths: Iterable[str] | None = None,
        client_identifier: Callable[[Request], str] | None = None,
    ) -> None:
        super().__init__(app)
        self.limiter_factory = limiter_factory
        self.exempt_paths = set(exempt_paths or ())
        self.client_identifier = client_identifier or default_client_identifier

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        path = request.url.path
        if path in self.exempt_paths:
            return await call_next(request)

        limiter = self._get_limiter()
        if limiter is None:
            if _is_auth_path(path):
                return _service_unavailable()
            return await call_next(request)

        client_key = self.client_identifier(request) or "anonymous"
        try:
            is_allowed = await limiter.allow(client_key)
        except Exception as exc:
            # Redis outages fail open, except on credential endpoints.
            logger.warning(
                "Rate limiter unavailable",
                extra={"path": path, "client": client_key},
                exc_info=exc,
            )
            if _is_auth_path(path):
                return _service_unavailable()
            return await call_next(request)

        if not is_allowed:
            return JSONResponse(
                {"message": "Too Many Requests"},
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            )

        return await call_next(request)

    def _get_limiter(self) -> RateLimiter | None:
        try:
            return self.limiter_factory()
        except Exception as exc:
            logger.warning("Rate limiter could not be created", exc_info=exc)
            return None
