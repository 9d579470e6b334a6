"""Typed failures raised by the feed core and mapped to HTTP at the boundary."""

from __future__ import annotations

from fastapi import status


class FeedError(Exception):
    """Base class for every domain failure surfaced to clients."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(FeedError):
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidCursor(FeedError):
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid cursor"


class Unauthenticated(FeedError):
    """Raised for every credential problem; the message never says which one."""

    http_status = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class NotFound(FeedError):
    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InternalError(FeedError):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"


__all__ = [
    "FeedError",
    "InvalidInput",
    "InvalidCursor",
    "Unauthenticated",
    "NotFound",
    "InternalError",
]
