"""Post like model."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, func
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Like(SQLModel, table=True):
    """Membership of one user in one post's like-set.

    The composite primary key makes the like-set a true set: a user can appear
    at most once per post.
    """

    __tablename__ = "likes"
    __table_args__ = (
        Index("ix_likes_post_created_at", "post_id", "created_at"),
    )

    user_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    post_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("posts.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    created_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True),
            default=_utcnow,
            server_default=func.now(),
            nullable=False,
        )
    )
