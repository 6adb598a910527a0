"""Relationship-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .user import UserResponse


class RelationshipResultResponse(BaseModel):
    """Outcome of a follow, friend-request or block mutation."""

    success: bool
    changed: bool = Field(..., description="False when the pair was already in that state")
    message: str
    reason: str | None = Field(None, description="Code for unchanged outcomes")
    incomplete: list[str] = Field(
        default_factory=list,
        description="Best-effort cleanup steps that failed",
    )

    model_config = ConfigDict(from_attributes=True)


class RelationshipStatus(BaseModel):
    """Read predicates between the current user and another profile."""

    user_id: str
    is_following: bool
    is_followed_by: bool
    are_mutual_friends: bool
    is_blocked: bool


class FollowCountsResponse(BaseModel):
    """Follow totals recomputed from relationship edges."""

    following_count: int
    followers_count: int
    friends_count: int

    model_config = ConfigDict(from_attributes=True)


class FriendRequestResponse(BaseModel):
    """A pending friend request and the other party's profile."""

    user: UserResponse
    status: str
    requested_at: datetime
