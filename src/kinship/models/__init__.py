# src/kinship/models/__init__.py
"""SQLAlchemy models for the Kinship application."""

from .engagement import Comment, PostLike
from .post import Post
from .relationship import EdgeKind, EdgeStatus, RelationshipEdge
from .user import User

__all__ = [
    "Comment", "PostLike",
    "Post",
    "EdgeKind", "EdgeStatus", "RelationshipEdge",
    "User",
]
