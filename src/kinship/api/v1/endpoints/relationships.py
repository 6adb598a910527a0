"""Follow, friend-request and block endpoints."""

from fastapi import APIRouter

from kinship.api.v1.dependencies import CurrentUserDep, RelationshipsDep
from kinship.schemas.relationship import RelationshipResultResponse, RelationshipStatus
from kinship.services.relationships import RelationshipResult

router = APIRouter(prefix="/relationships", tags=["relationships"])


def _out(result: RelationshipResult) -> RelationshipResultResponse:
    return RelationshipResultResponse(
        success=result.success,
        changed=result.changed,
        message=result.message,
        reason=result.reason,
        incomplete=list(result.incomplete),
    )


@router.post("/follow/{user_id}", response_model=RelationshipResultResponse)
async def follow_user(
    user_id: str,
    current_user: CurrentUserDep,
    relationships: RelationshipsDep,
) -> RelationshipResultResponse:
    """Follow another user; following twice is a successful no-op."""
    return _out(relationships.follow(current_user.id, user_id))


@router.delete("/follow/{user_id}", response_model=RelationshipResultResponse)
async def unfollow_user(
    user_id: str,
    current_user: CurrentUserDep,
    relationships: RelationshipsDep,
) -> RelationshipResultResponse:
    """Stop following a user."""
    return _out(relationships.unfollow(current_user.id, user_id))


@router.post("/friend-requests/{user_id}", response_model=RelationshipResultResponse)
async def send_friend_request(
    user_id: str,
    current_user: CurrentUserDep,
    relationships: RelationshipsDep,
) -> RelationshipResultResponse:
    """Send a friend request to ``user_id``."""
    return _out(relationships.send_friend_request(current_user.id, user_id))


@router.delete("/friend-requests/{user_id}", response_model=RelationshipResultResponse)
async def cancel_friend_request(
    user_id: str,
    current_user: CurrentUserDep,
    relationships: RelationshipsDep,
) -> RelationshipResultResponse:
    """Withdraw a pending request the current user sent to ``user_id``."""
    return _out(relationships.cancel_friend_request(current_user.id, user_id))


@router.post("/friend-requests/{user_id}/accept", response_model=RelationshipResultResponse)
async def accept_friend_request(
    user_id: str,
    current_user: CurrentUserDep,
    relationships: RelationshipsDep,
) -> RelationshipResultResponse:
    """Accept the request ``user_id`` sent to the current user."""
    return _out(relationships.accept_friend_request(user_id, current_user.id))


@router.post("/friend-requests/{user_id}/reject", response_model=RelationshipResultResponse)
async def reject_friend_request(
    user_id: str,
    current_user: CurrentUserDep,
    relationships: RelationshipsDep,
) -> RelationshipResultResponse:
    """Reject the request ``user_id`` sent to the current user."""
    return _out(relationships.reject_friend_request(user_id, current_user.id))


@router.post("/block/{user_id}", response_model=RelationshipResultResponse)
async def block_user(
    user_id: str,
    current_user: CurrentUserDep,
    relationships: RelationshipsDep,
) -> RelationshipResultResponse:
    """Block a user and drop any follow or friend request between the pair."""
    return _out(relationships.block_user(current_user.id, user_id))


@router.delete("/block/{user_id}", response_model=RelationshipResultResponse)
async def unblock_user(
    user_id: str,
    current_user: CurrentUserDep,
    relationships: RelationshipsDep,
) -> RelationshipResultResponse:
    """Remove a block; earlier follows are not restored."""
    return _out(relationships.unblock_user(current_user.id, user_id))


@router.get("/status/{user_id}", response_model=RelationshipStatus)
async def relationship_status(
    user_id: str,
    current_user: CurrentUserDep,
    relationships: RelationshipsDep,
) -> RelationshipStatus:
    """Report how the current user and ``user_id`` are connected."""
    is_following = relationships.is_following(current_user.id, user_id)
    is_followed_by = relationships.is_following(user_id, current_user.id)
    return RelationshipStatus(
        user_id=user_id,
        is_following=is_following,
        is_followed_by=is_followed_by,
        are_mutual_friends=is_following and is_followed_by,
        is_blocked=relationships.is_blocked_between(current_user.id, user_id),
    )
