"""Likes, comments and the cached counters derived from them.

Counters on :class:`~kinship.models.Post` are caches. After every like or
comment mutation the synchronizer recounts the edge table and overwrites the
cache instead of incrementing it, so concurrent double-submits can never leave
a permanently wrong total. After writing, the count is read once more and the
write repeated if another mutation slipped in. A failed cache write is logged
and ignored: the edge row is the source of truth and the next mutation
corrects the cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from kinship.core.settings import settings
from kinship.models import Comment, Post, PostLike, User
from kinship.services.errors import (
    InvalidOperation,
    NotFound,
    PermissionDenied,
    StoreUnavailable,
)

if TYPE_CHECKING:
    from kinship.repositories.edge_store import EdgeStore

logger = logging.getLogger(__name__)

# Write-then-verify rounds before a moving counter is left to the next mutation.
SYNC_ATTEMPTS = 3


@dataclass(frozen=True)
class LikeResult:
    """State after a like toggle; ``likes_count`` is always freshly recounted."""

    liked: bool
    likes_count: int


@dataclass(frozen=True)
class CommentResult:
    """A new comment and the recounted total for its post."""

    comment: Comment
    comments_count: int


@dataclass(frozen=True)
class CommentRemoval:
    """Post a deleted comment belonged to and its recounted total."""

    post_id: int
    comments_count: int


@dataclass(frozen=True)
class CommentEntry:
    """A comment paired with its author's profile."""

    comment: Comment
    author: User | None


class EngagementSynchronizer:
    """Mutate like/comment edges and republish the derived post counters."""

    def __init__(self, store: EdgeStore) -> None:
        self.store = store

    def toggle_like(self, user_id: str, post_id: int) -> LikeResult:
        """Like the post if the user has not, otherwise remove the like.

        Args:
            user_id: Acting profile id.
            post_id: Target post id.

        Returns:
            The new like state and the authoritative like count.

        Raises:
            NotFound: The post does not exist or was deleted.
            StoreUnavailable: The like edge could not be written or recounted.
        """
        self._require_post(post_id)
        edge = {"post_id": post_id, "user_id": user_id}

        if self.store.find_edge(PostLike, edge) is not None:
            # Removes duplicates left by racing double-submits as well.
            self.store.delete_edges(PostLike, edge)
            liked = False
        else:
            self.store.insert_edge(PostLike, edge)
            liked = True

        return LikeResult(liked=liked, likes_count=self.sync_like_count(post_id))

    def has_liked(self, user_id: str, post_id: int) -> bool:
        """Return True if the user currently likes the post."""
        return self.store.find_edge(PostLike, {"post_id": post_id, "user_id": user_id}) is not None

    def get_like_count(self, post_id: int) -> int:
        """Return the like count straight from the edge table."""
        return self.store.count_rows(PostLike, {"post_id": post_id})

    def sync_like_count(self, post_id: int) -> int:
        """Recount likes and overwrite the post's cached ``like_count``."""
        return self._sync(post_id, PostLike, "like_count")

    def add_comment(
        self,
        user_id: str,
        post_id: int,
        body: str,
        parent_comment_id: int | None = None,
    ) -> CommentResult:
        """Insert a comment (or reply) and recount the post's comments."""
        text = (body or "").strip()
        if not text:
            raise InvalidOperation("Comment cannot be empty")
        if len(text) > settings.comment_max_length:
            raise InvalidOperation("Comment is too long")

        self._require_post(post_id)
        if parent_comment_id is not None:
            parent = self.store.get(Comment, parent_comment_id)
            if parent is None:
                raise NotFound("Parent comment not found")
            if parent.post_id != post_id:
                raise InvalidOperation("Parent comment belongs to another post")

        comment = self.store.insert_edge(
            Comment,
            {
                "post_id": post_id,
                "user_id": user_id,
                "body": text,
                "parent_comment_id": parent_comment_id,
            },
        )
        return CommentResult(comment=comment, comments_count=self.sync_comment_count(post_id))

    def delete_comment(self, user_id: str, comment_id: int) -> CommentRemoval:
        """Delete the author's comment together with every reply beneath it."""
        comment = self.store.get(Comment, comment_id)
        if comment is None:
            raise NotFound("Comment not found")
        if comment.user_id != user_id:
            raise PermissionDenied("You can only delete your own comments")

        post_id = comment.post_id
        thread = self._reply_tree(comment_id)
        # Leaves first, so a failure never strands a reply under a deleted parent.
        for ids in reversed(thread):
            self.store.delete_edges(Comment, {"id": ids})
        return CommentRemoval(post_id=post_id, comments_count=self.sync_comment_count(post_id))

    def _reply_tree(self, comment_id: int) -> list[list[int]]:
        levels = [[comment_id]]
        seen = {comment_id}
        while True:
            replies = self.store.find_edges(Comment, {"parent_comment_id": levels[-1]})
            next_ids = [reply.id for reply in replies if reply.id not in seen]
            if not next_ids:
                return levels
            seen.update(next_ids)
            levels.append(next_ids)

    def list_comments(self, post_id: int) -> list[CommentEntry]:
        """Return the post's comments newest first."""
        self._require_post(post_id)
        comments = self.store.find_edges(Comment, {"post_id": post_id}, order_by="created_at")
        author_ids = list({comment.user_id for comment in comments})
        authors = {
            user.id: user for user in self.store.find_edges(User, {"id": author_ids})
        } if author_ids else {}
        return [CommentEntry(comment=c, author=authors.get(c.user_id)) for c in comments]

    def sync_comment_count(self, post_id: int) -> int:
        """Recount comments and overwrite the post's cached ``comment_count``."""
        return self._sync(post_id, Comment, "comment_count")

    def _sync(self, post_id: int, edge_model: type, counter: str) -> int:
        count = self._recount(post_id, edge_model, counter)
        for _ in range(SYNC_ATTEMPTS):
            try:
                self.store.update_edges(Post, {"id": post_id}, {counter: count})
            except StoreUnavailable:
                logger.warning("Could not update %s for post %s; left stale", counter, post_id)
                return count
            # Another mutation may have landed between the count and the write.
            settled = self._recount(post_id, edge_model, counter)
            if settled == count:
                return count
            count = settled
        logger.warning(
            "%s for post %s still moving after %d writes", counter, post_id, SYNC_ATTEMPTS
        )
        return count

    def _recount(self, post_id: int, edge_model: type, counter: str) -> int:
        try:
            return self.store.count_rows(edge_model, {"post_id": post_id})
        except StoreUnavailable as err:
            raise StoreUnavailable(err.message, step=f"recount_{counter}") from err

    def _require_post(self, post_id: int) -> Post:
        post = self.store.get(Post, post_id)
        if post is None or post.deleted:
            raise NotFound("Post not found")
        return post
