"""Feed domain services."""

from .cursor import decode_cursor, encode_cursor
from .records import FeedPage, LikeToggle, PostRecord, UserRef
from .repository import PostRepository, SqlPostRepository
from .schemas import (
    CreatePostRequest,
    FeedPageResponse,
    LikeToggleResponse,
    ListPostsRequest,
    PostResponse,
    UserSummary,
)
from .service import DEFAULT_LIMIT, MAX_LIMIT, MAX_POST_CONTENT_LENGTH, FeedService

__all__ = [
    "decode_cursor",
    "encode_cursor",
    "FeedPage",
    "LikeToggle",
    "PostRecord",
    "UserRef",
    "PostRepository",
    "SqlPostRepository",
    "CreatePostRequest",
    "ListPostsRequest",
    "PostResponse",
    "FeedPageResponse",
    "LikeToggleResponse",
    "UserSummary",
    "FeedService",
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "MAX_POST_CONTENT_LENGTH",
]
