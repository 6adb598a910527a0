"""Profile and relationship listing endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from kinship.api.v1.dependencies import CurrentUserDep, RelationshipsDep
from kinship.core.settings import settings
from kinship.models import User
from kinship.schemas.relationship import FollowCountsResponse, FriendRequestResponse
from kinship.schemas.user import UserResponse
from kinship.services.relationships import PendingRequest

router = APIRouter(prefix="/users", tags=["users"])


def _users(profiles: list[User]) -> list[UserResponse]:
    return [UserResponse.model_validate(profile) for profile in profiles]


def _requests(pending: list[PendingRequest]) -> list[FriendRequestResponse]:
    return [
        FriendRequestResponse(
            user=UserResponse.model_validate(entry.profile),
            status=entry.edge.status,
            requested_at=entry.requested_at,
        )
        for entry in pending
    ]


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUserDep) -> UserResponse:
    """Return the current user's profile."""
    return UserResponse.model_validate(current_user)


@router.get("/me/friend-requests/received", response_model=list[FriendRequestResponse])
async def received_friend_requests(
    current_user: CurrentUserDep,
    relationships: RelationshipsDep,
) -> list[FriendRequestResponse]:
    """List pending friend requests addressed to the current user."""
    return _requests(relationships.get_received_friend_requests(current_user.id))


@router.get("/me/friend-requests/sent", response_model=list[FriendRequestResponse])
async def sent_friend_requests(
    current_user: CurrentUserDep,
    relationships: RelationshipsDep,
) -> list[FriendRequestResponse]:
    """List pending friend requests the current user has sent."""
    return _requests(relationships.get_sent_friend_requests(current_user.id))


@router.get("/me/blocked", response_model=list[UserResponse])
async def blocked_users(
    current_user: CurrentUserDep,
    relationships: RelationshipsDep,
) -> list[UserResponse]:
    """List users the current user has blocked."""
    return _users(relationships.get_blocked_users(current_user.id))


@router.get("/me/suggestions", response_model=list[UserResponse])
async def suggested_users(
    current_user: CurrentUserDep,
    relationships: RelationshipsDep,
    limit: int = Query(settings.suggested_users_limit, ge=1, le=50),
) -> list[UserResponse]:
    """Suggest recent profiles the current user does not follow yet."""
    return _users(relationships.get_suggested_users(current_user.id, limit))


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, relationships: RelationshipsDep) -> UserResponse:
    """Return a public profile."""
    return UserResponse.model_validate(relationships.get_profile(user_id))


@router.get("/{user_id}/counts", response_model=FollowCountsResponse)
async def follow_counts(user_id: str, relationships: RelationshipsDep) -> FollowCountsResponse:
    """Return follower, following and friend totals."""
    relationships.get_profile(user_id)
    return FollowCountsResponse.model_validate(relationships.get_follow_counts(user_id))


@router.get("/{user_id}/followers", response_model=list[UserResponse])
async def followers(user_id: str, relationships: RelationshipsDep) -> list[UserResponse]:
    """List profiles following ``user_id``."""
    relationships.get_profile(user_id)
    return _users(relationships.get_followers(user_id))


@router.get("/{user_id}/following", response_model=list[UserResponse])
async def following(user_id: str, relationships: RelationshipsDep) -> list[UserResponse]:
    """List profiles ``user_id`` follows."""
    relationships.get_profile(user_id)
    return _users(relationships.get_following(user_id))


@router.get("/{user_id}/friends", response_model=list[UserResponse])
async def friends(user_id: str, relationships: RelationshipsDep) -> list[UserResponse]:
    """List mutual friends of ``user_id``."""
    relationships.get_profile(user_id)
    return _users(relationships.get_mutual_friends(user_id))
