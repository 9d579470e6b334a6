"""Feed API payload schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .records import FeedPage, LikeToggle, PostRecord, UserRef


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreatePostRequest(BaseModel):
    content: str


class ListPostsRequest(BaseModel):
    """Query parameters of the feed listing, coerced from raw query strings."""

    limit: int | None = None
    cursor: str | None = None

    @classmethod
    def from_query(cls, limit: str | None, cursor: str | None) -> "ListPostsRequest":
        parsed_limit: int | None = None
        if limit is not None:
            try:
                parsed_limit = int(limit.strip())
            except ValueError:
                parsed_limit = None

        normalized_cursor = cursor.strip() if cursor is not None else None
        return cls(limit=parsed_limit, cursor=normalized_cursor or None)


class UserSummary(_CamelModel):
    id: str
    username: str

    @classmethod
    def from_ref(cls, ref: UserRef) -> "UserSummary":
        return cls(id=ref.id, username=ref.username)


class PostResponse(_CamelModel):
    id: int
    content: str
    author: UserSummary
    likes: list[UserSummary]
    likes_count: int
    created_at: datetime

    @classmethod
    def from_record(cls, record: PostRecord) -> "PostResponse":
        return cls(
            id=record.id,
            content=record.content,
            author=UserSummary.from_ref(record.author),
            likes=[UserSummary.from_ref(liker) for liker in record.likes],
            likes_count=record.like_count,
            created_at=record.created_at,
        )


class FeedPageResponse(_CamelModel):
    posts: list[PostResponse]
    next_cursor: str | None
    limit: int
    returned: int

    @classmethod
    def from_page(cls, page: FeedPage) -> "FeedPageResponse":
        return cls(
            posts=[PostResponse.from_record(post) for post in page.posts],
            next_cursor=page.next_cursor,
            limit=page.limit,
            returned=page.returned,
        )


class LikeToggleResponse(_CamelModel):
    post: PostResponse
    liked: bool

    @classmethod
    def from_toggle(cls, toggle: LikeToggle) -> "LikeToggleResponse":
        return cls(post=PostResponse.from_record(toggle.post), liked=toggle.liked)
