"""Like and comment Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .user import UserResponse


class LikeStatus(BaseModel):
    """Like state of a post for the current user."""

    liked: bool
    likes_count: int = Field(..., description="Authoritative count from the like table")

    model_config = ConfigDict(from_attributes=True)


class CommentCreate(BaseModel):
    """Schema for commenting on a post."""

    body: str = Field(..., min_length=1, description="Comment text")
    parent_comment_id: int | None = Field(None, description="Comment being replied to")


class CommentResponse(BaseModel):
    """A comment with its author."""

    id: int
    post_id: int
    parent_comment_id: int | None = None
    body: str
    created_at: datetime
    author: UserResponse | None = None


class CommentsCount(BaseModel):
    """Recounted comment total after a mutation."""

    post_id: int
    comments_count: int
    comment: CommentResponse | None = None
