"""Post creation, feed listing and like endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from api.deps import get_current_identity, get_feed_service
from services.auth import UserIdentity
from services.feed import (
    CreatePostRequest,
    FeedPageResponse,
    FeedService,
    LikeToggleResponse,
    ListPostsRequest,
    PostResponse,
)

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PostResponse)
async def create_post(
    payload: CreatePostRequest,
    identity: UserIdentity = Depends(get_current_identity),
    feed: FeedService = Depends(get_feed_service),
) -> PostResponse:
    post = await feed.create_post(payload, identity)
    return PostResponse.from_record(post)


@router.get(
    "",
    response_model=FeedPageResponse,
    dependencies=[Depends(get_current_identity)],
)
async def list_posts(
    limit: str | None = Query(default=None),
    cursor: str | None = Query(default=None),
    feed: FeedService = Depends(get_feed_service),
) -> FeedPageResponse:
    # Raw strings: an unparseable limit falls back to the default page size.
    page = await feed.list_posts(ListPostsRequest.from_query(limit, cursor))
    return FeedPageResponse.from_page(page)


@router.post("/{post_id}/like", response_model=LikeToggleResponse)
async def toggle_like(
    post_id: str,
    identity: UserIdentity = Depends(get_current_identity),
    feed: FeedService = Depends(get_feed_service),
) -> LikeToggleResponse:
    toggle = await feed.toggle_like(post_id, identity)
    return LikeToggleResponse.from_toggle(toggle)
