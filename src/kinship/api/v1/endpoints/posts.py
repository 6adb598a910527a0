"""Post, like and comment endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from kinship.api.v1.dependencies import CurrentUserDep, EngagementDep, StoreDep
from kinship.models import Comment, User
from kinship.schemas.engagement import (
    CommentCreate,
    CommentResponse,
    CommentsCount,
    LikeStatus,
)
from kinship.schemas.post import PostCreate, PostResponse
from kinship.schemas.user import UserResponse
from kinship.services import post_service

router = APIRouter(prefix="/posts", tags=["posts"])


def _comment_out(comment: Comment, author: User | None) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        parent_comment_id=comment.parent_comment_id,
        body=comment.body,
        created_at=comment.created_at,
        author=UserResponse.model_validate(author) if author is not None else None,
    )


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: PostCreate,
    current_user: CurrentUserDep,
    store: StoreDep,
) -> PostResponse:
    """Publish a post as the current user."""
    post = post_service.create_post(
        store=store,
        author_id=current_user.id,
        body=payload.body,
        location=payload.location,
        image_url=payload.image_url,
    )
    return PostResponse.model_validate(post)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: int, store: StoreDep) -> PostResponse:
    """Return a single post."""
    return PostResponse.model_validate(post_service.get_visible_post(store, post_id))


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(post_id: int, current_user: CurrentUserDep, store: StoreDep) -> Response:
    """Delete one of the current user's posts."""
    post_service.delete_post(store, current_user.id, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/like", response_model=LikeStatus)
async def toggle_like(
    post_id: int,
    current_user: CurrentUserDep,
    engagement: EngagementDep,
) -> LikeStatus:
    """Like or unlike a post; the count is recounted from the like table."""
    return LikeStatus.model_validate(engagement.toggle_like(current_user.id, post_id))


@router.get("/{post_id}/like", response_model=LikeStatus)
async def get_like_status(
    post_id: int,
    current_user: CurrentUserDep,
    engagement: EngagementDep,
    store: StoreDep,
) -> LikeStatus:
    """Report whether the current user likes the post."""
    post_service.get_visible_post(store, post_id)
    return LikeStatus(
        liked=engagement.has_liked(current_user.id, post_id),
        likes_count=engagement.get_like_count(post_id),
    )


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
async def list_comments(post_id: int, engagement: EngagementDep) -> list[CommentResponse]:
    """List a post's comments newest first."""
    entries = engagement.list_comments(post_id)
    return [_comment_out(entry.comment, entry.author) for entry in entries]


@router.post(
    "/{post_id}/comments",
    response_model=CommentsCount,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: int,
    payload: CommentCreate,
    current_user: CurrentUserDep,
    engagement: EngagementDep,
) -> CommentsCount:
    """Comment on a post."""
    result = engagement.add_comment(
        current_user.id,
        post_id,
        payload.body,
        parent_comment_id=payload.parent_comment_id,
    )
    return CommentsCount(
        post_id=post_id,
        comments_count=result.comments_count,
        comment=_comment_out(result.comment, current_user),
    )


@router.delete("/comments/{comment_id}", response_model=CommentsCount)
async def delete_comment(
    comment_id: int,
    current_user: CurrentUserDep,
    engagement: EngagementDep,
) -> CommentsCount:
    """Delete one of the current user's comments."""
    result = engagement.delete_comment(current_user.id, comment_id)
    return CommentsCount(post_id=result.post_id, comments_count=result.comments_count)
