"""Request-scoped value objects handed out by the feed core."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class UserRef:
    id: str
    username: str


@dataclass(frozen=True)
class PostRecord:
    """Snapshot of a stored post with its author and like-set resolved."""

    id: int
    content: str
    author: UserRef
    created_at: datetime
    likes: tuple[UserRef, ...] = ()

    @property
    def like_count(self) -> int:
        return len(self.likes)


@dataclass(frozen=True)
class FeedPage:
    posts: list[PostRecord] = field(default_factory=list)
    next_cursor: str | None = None
    limit: int = 0

    @property
    def returned(self) -> int:
        return len(self.posts)


@dataclass(frozen=True)
class LikeToggle:
    post: PostRecord
    liked: bool
