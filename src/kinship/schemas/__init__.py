"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .engagement import CommentCreate, CommentResponse, CommentsCount, LikeStatus
from .feed import FeedPostResponse, FeedResponse
from .post import PostCreate, PostResponse
from .relationship import (
    FollowCountsResponse,
    FriendRequestResponse,
    RelationshipResultResponse,
    RelationshipStatus,
)
from .user import UserResponse

__all__ = [
    "CommentCreate", "CommentResponse", "CommentsCount", "LikeStatus",
    "FeedPostResponse", "FeedResponse",
    "PostCreate", "PostResponse",
    "FollowCountsResponse", "FriendRequestResponse",
    "RelationshipResultResponse", "RelationshipStatus",
    "UserResponse",
]
