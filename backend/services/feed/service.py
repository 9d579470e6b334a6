"""Feed orchestration: post creation, cursor pagination and like toggling."""

from __future__ import annotations

import logging

from services.auth.gate import UserIdentity
from services.errors import InvalidInput
from .cursor import decode_cursor, encode_cursor, parse_sort_key
from .records import FeedPage, LikeToggle, PostRecord
from .repository import PostRepository
from .schemas import CreatePostRequest, ListPostsRequest

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 50
MAX_POST_CONTENT_LENGTH = 2200


def resolve_limit(requested: int | None) -> int:
    """Clamp a requested page size into ``[1, MAX_LIMIT]``."""
    if requested is None or requested <= 0:
        return DEFAULT_LIMIT
    return min(requested, MAX_LIMIT)


def parse_post_id(raw_post_id: str) -> int:
    post_id = parse_sort_key(raw_post_id.strip())
    if post_id is None:
        raise InvalidInput("Invalid post id")
    return post_id


class FeedService:
    def __init__(self, repository: PostRepository) -> None:
        self.repository = repository

    async def create_post(
        self,
        request: CreatePostRequest,
        author: UserIdentity,
    ) -> PostRecord:
        content = request.content.strip()
        if not content:
            raise InvalidInput("Content is required")
        if len(content) > MAX_POST_CONTENT_LENGTH:
            raise InvalidInput(
                f"Content must be at most {MAX_POST_CONTENT_LENGTH} characters"
            )

        post = await self.repository.insert(content=content, author_id=author.user_id)
        logger.info(
            "Post created",
            extra={"post_id": post.id, "user_id": author.user_id},
        )
        return post

    async def list_posts(self, request: ListPostsRequest) -> FeedPage:
        limit = resolve_limit(request.limit)
        boundary = decode_cursor(request.cursor) if request.cursor else None

        posts = await self.repository.scan_before(boundary, limit + 1)
        next_cursor: str | None = None
        if len(posts) > limit:
            posts = posts[:limit]
            next_cursor = encode_cursor(posts[-1].id)

        return FeedPage(posts=posts, next_cursor=next_cursor, limit=limit)

    async def toggle_like(self, raw_post_id: str, user: UserIdentity) -> LikeToggle:
        post_id = parse_post_id(raw_post_id)
        post, liked = await self.repository.toggle_like(post_id, user.user_id)
        logger.info(
            "Post like toggled",
            extra={"post_id": post_id, "user_id": user.user_id, "liked": liked},
        )
        return LikeToggle(post=post, liked=liked)
