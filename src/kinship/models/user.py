# src/kinship/models/user.py
"""SQLAlchemy model for user profiles."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from kinship.db.session import Base
from kinship.db.time import utcnow


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Public profile of an account.

    Accounts are created by the external signup flow; the identifier never
    changes once assigned.
    """

    __tablename__ = "profile"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_user_id)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
