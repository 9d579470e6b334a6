"""Post persistence: ordered range scans and atomic like-set mutation."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, cast

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db.errors import is_unique_violation
from models import Like, Post, User
from services.errors import InternalError, InvalidInput, NotFound
from .records import PostRecord, UserRef, ensure_aware


class PostRepository(Protocol):
    async def insert(self, *, content: str, author_id: str) -> PostRecord: ...

    async def scan_before(self, boundary: int | None, limit: int) -> list[PostRecord]: ...

    async def toggle_like(self, post_id: int, user_id: str) -> tuple[PostRecord, bool]: ...

    async def get(self, post_id: int) -> PostRecord | None: ...


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _lt(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column < value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


def _asc(column: Any) -> Any:
    return cast(Any, column).asc()


def _build_record(
    post: Post,
    author_username: str,
    likes: Sequence[UserRef] = (),
) -> PostRecord:
    if post.id is None:
        raise ValueError("Post record missing identifier")
    return PostRecord(
        id=post.id,
        content=post.content,
        author=UserRef(id=post.author_id, username=author_username),
        created_at=ensure_aware(post.created_at),
        likes=tuple(likes),
    )


class SqlPostRepository:
    """PostRepository backed by a request-scoped SQLAlchemy session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, *, content: str, author_id: str) -> PostRecord:
        if not content:
            raise InvalidInput("Content is required")
        if not author_id:
            raise InvalidInput("Author is required")

        username_column = cast(ColumnElement[str], User.username)
        author_result = await self.session.execute(
            select(username_column).where(_eq(User.id, author_id)).limit(1)
        )
        author_username = author_result.scalar_one_or_none()
        if author_username is None:
            raise InvalidInput("Author not found")

        post = Post(author_id=author_id, content=content)
        self.session.add(post)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise InternalError("Failed to create post") from exc
        await self.session.refresh(post)
        return _build_record(post, author_username)

    async def scan_before(self, boundary: int | None, limit: int) -> list[PostRecord]:
        """Return up to ``limit`` posts with id below ``boundary``, newest first."""
        if limit <= 0:
            return []

        post_entity = cast(Any, Post)
        username_column = cast(ColumnElement[str], User.username)
        query = (
            select(post_entity, username_column)
            .join(User, _eq(User.id, Post.author_id))
            .order_by(_desc(Post.id))
            .limit(limit)
        )
        if boundary is not None:
            query = query.where(_lt(Post.id, boundary))

        result = await self.session.execute(query)
        rows = result.all()
        post_ids = [post.id for post, _username in rows if post.id is not None]
        likers = await self._collect_likers(post_ids)
        return [
            _build_record(post, username, likers.get(post.id, ()))
            for post, username in rows
        ]

    async def get(self, post_id: int) -> PostRecord | None:
        post_entity = cast(Any, Post)
        username_column = cast(ColumnElement[str], User.username)
        result = await self.session.execute(
            select(post_entity, username_column)
            .join(User, _eq(User.id, Post.author_id))
            .where(_eq(Post.id, post_id))
            .limit(1)
        )
        row = result.first()
        if row is None:
            return None

        post, username = row
        likers = await self._collect_likers([post_id])
        return _build_record(post, username, likers.get(post_id, ()))

    async def toggle_like(self, post_id: int, user_id: str) -> tuple[PostRecord, bool]:
        """Flip ``user_id`` in the post's like-set inside one transaction.

        The delete is attempted first; only when nothing was removed is the
        like inserted. Both statements touch a single ``(user_id, post_id)``
        key, so toggles by different users never overwrite each other.
        """
        post_id_column = cast(ColumnElement[int], Post.id)
        existing = await self.session.execute(
            select(post_id_column).where(_eq(post_id_column, post_id)).limit(1)
        )
        if existing.scalar_one_or_none() is None:
            raise NotFound("Post not found")

        like_user_column = cast(ColumnElement[str], Like.user_id)
        like_post_column = cast(ColumnElement[int], Like.post_id)
        try:
            removed = await self.session.execute(
                delete(Like)
                .where(_eq(like_user_column, user_id), _eq(like_post_column, post_id))
                .execution_options(synchronize_session=False)
            )
            liked = cast(Any, removed).rowcount == 0
            if liked:
                await self.session.execute(
                    insert(Like).values(user_id=user_id, post_id=post_id)
                )
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            if not is_unique_violation(exc):
                raise InternalError("Failed to update like") from exc
            # A concurrent request by the same user inserted the row first.
            liked = True
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise InternalError("Failed to update like") from exc

        record = await self.get(post_id)
        if record is None:
            raise NotFound("Post not found")
        return record, liked

    async def _collect_likers(self, post_ids: list[int]) -> dict[int, list[UserRef]]:
        if not post_ids:
            return {}

        like_post_column = cast(ColumnElement[int], Like.post_id)
        user_id_column = cast(ColumnElement[str], User.id)
        username_column = cast(ColumnElement[str], User.username)
        result = await self.session.execute(
            select(like_post_column, user_id_column, username_column)
            .join(User, _eq(User.id, Like.user_id))
            .where(like_post_column.in_(post_ids))
            .order_by(
                _asc(like_post_column),
                _asc(Like.created_at),
                _asc(Like.user_id),
            )
        )
        likers: dict[int, list[UserRef]] = {}
        for post_id, user_id, username in result.all():
            likers.setdefault(post_id, []).append(UserRef(id=user_id, username=username))
        return likers
