# src/kinship/models/relationship.py
"""Directed relationship edges between profiles."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from kinship.db.session import Base
from kinship.db.time import utcnow


class EdgeKind(str, enum.Enum):
    """Kind of a relationship edge."""

    FOLLOW = "follow"
    FRIEND_REQUEST = "friend_request"
    BLOCK = "blocked"


class EdgeStatus(str, enum.Enum):
    """Lifecycle status of a relationship edge.

    Follow and Block edges are always ACTIVE. Friend requests start PENDING
    and move to ACCEPTED or REJECTED, never back.
    """

    ACTIVE = "active"
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RelationshipEdge(Base):
    """Directed edge ``source -> target`` of a given kind.

    There is deliberately no unique constraint on (source_id, target_id, kind);
    uniqueness is checked by the relationship engine before every insert.
    A mutual friendship is two FOLLOW edges, one in each direction.
    """

    __tablename__ = "user_follows"
    __table_args__ = (
        Index("ix_user_follows_source_kind", "source_id", "kind"),
        Index("ix_user_follows_target_kind", "target_id", "kind"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profile.id", ondelete="CASCADE"),
        nullable=False,
    )
    target_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profile.id", ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
