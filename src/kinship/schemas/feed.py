"""Feed Pydantic schemas."""

from pydantic import BaseModel

from .post import PostResponse
from .user import UserResponse


class FeedPostResponse(BaseModel):
    """A post annotated for the viewer."""

    post: PostResponse
    author: UserResponse | None = None
    is_own_post: bool
    timestamp: str


class FeedResponse(BaseModel):
    """All three home feed views."""

    all: list[FeedPostResponse]
    friends: list[FeedPostResponse]
    following: list[FeedPostResponse]
    fallback: bool = False
