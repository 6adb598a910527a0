"""Home feed endpoint."""
from __future__ import annotations

from fastapi import APIRouter

from kinship.api.v1.dependencies import CurrentUserDep, FeedDep
from kinship.schemas.feed import FeedPostResponse, FeedResponse
from kinship.schemas.post import PostResponse
from kinship.schemas.user import UserResponse
from kinship.services.feed import FeedPost

router = APIRouter(prefix="/feed", tags=["feed"])


def _entries(entries: list[FeedPost]) -> list[FeedPostResponse]:
    return [
        FeedPostResponse(
            post=PostResponse.model_validate(entry.post),
            author=UserResponse.model_validate(entry.author) if entry.author else None,
            is_own_post=entry.is_own_post,
            timestamp=entry.timestamp,
        )
        for entry in entries
    ]


@router.get("", response_model=FeedResponse)
async def get_home_feed(current_user: CurrentUserDep, composer: FeedDep) -> FeedResponse:
    """Return the ``all``, ``friends`` and ``following`` views for the current user."""
    view = composer.get_feed(current_user.id)
    return FeedResponse(
        all=_entries(view.all),
        friends=_entries(view.friends),
        following=_entries(view.following),
        fallback=view.fallback,
    )
