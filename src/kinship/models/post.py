# src/kinship/models/post.py
"""SQLAlchemy model for posts."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from kinship.db.session import Base
from kinship.db.time import utcnow


class Post(Base):
    """Content shared by a profile.

    ``like_count`` and ``comment_count`` are caches. The source of truth is the
    number of rows in ``post_like`` and ``comment`` for the post; the
    engagement synchronizer overwrites the caches after every mutation.
    """

    __tablename__ = "post"
    __table_args__ = (Index("ix_post_author_created", "author_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profile.id", ondelete="CASCADE"),
        nullable=False,
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    like_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    comment_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
