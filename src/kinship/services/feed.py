"""Home feed composition from follow edges and the post store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from kinship.db.time import as_utc, utcnow
from kinship.models import Post, User
from kinship.services.relationships import RelationshipEngine

if TYPE_CHECKING:
    from kinship.repositories.edge_store import EdgeStore

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 60 * 60
HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7


def humanize_timestamp(created_at: datetime, now: datetime | None = None) -> str:
    """Return a relative label for ``created_at``.

    Under an hour is "just now", under a day "<n> hours ago", under a week
    "<n> days ago"; anything older is shown as the calendar date.
    """
    created = as_utc(created_at)
    current = as_utc(now) if now is not None else utcnow()
    hours = int((current - created).total_seconds() // SECONDS_PER_HOUR)
    days = hours // HOURS_PER_DAY

    if hours < 1:
        return "just now"
    if hours < HOURS_PER_DAY:
        return f"{hours} hours ago"
    if days < DAYS_PER_WEEK:
        return f"{days} days ago"
    return created.date().isoformat()


@dataclass(frozen=True)
class FeedPost:
    """A post as shown in a feed, annotated for the viewer."""

    post: Post
    author: User | None
    is_own_post: bool
    timestamp: str


@dataclass
class FeedView:
    """The three partitions of a viewer's home feed, newest first."""

    all: list[FeedPost] = field(default_factory=list)
    friends: list[FeedPost] = field(default_factory=list)
    following: list[FeedPost] = field(default_factory=list)
    fallback: bool = False


class FeedComposer:
    """Build request-scoped feed views; nothing is cached between calls."""

    def __init__(self, store: EdgeStore, page_size: int) -> None:
        self.store = store
        self.page_size = page_size
        self.relationships = RelationshipEngine(store)

    def get_feed(self, viewer_id: str, now: datetime | None = None) -> FeedView:
        """Compose the ``all``, ``friends`` and ``following`` views.

        Friends are authors followed in both directions, following are authors
        only followed by the viewer; an author in both sets counts as a
        friend. The viewer's own posts only ever land in ``all``. A viewer who
        follows nobody gets the globally most recent posts in ``all`` and
        empty partitions. Authors blocked in either direction are skipped in
        both cases.
        """
        blocked = self.relationships.blocked_ids(viewer_id)
        outbound = [
            uid for uid in self.relationships.following_ids(viewer_id)
            if uid != viewer_id and uid not in blocked
        ]
        inbound = set(self.relationships.follower_ids(viewer_id))

        friend_ids = {uid for uid in outbound if uid in inbound}
        following_ids = {uid for uid in outbound if uid not in friend_ids}
        all_user_ids = friend_ids | following_ids | {viewer_id}

        if all_user_ids == {viewer_id}:
            posts = self.store.query_posts(None, self.page_size, exclude_authors=blocked)
            logger.debug("Viewer %s follows nobody; serving %d recent posts", viewer_id, len(posts))
            return FeedView(all=self._annotate(posts, viewer_id, now), fallback=True)

        posts = self.store.query_posts(all_user_ids, self.page_size)
        entries = self._annotate(posts, viewer_id, now)
        return FeedView(
            all=entries,
            friends=[entry for entry in entries if entry.post.author_id in friend_ids],
            following=[entry for entry in entries if entry.post.author_id in following_ids],
        )

    def _annotate(self, posts: list[Post], viewer_id: str, now: datetime | None) -> list[FeedPost]:
        author_ids = list({post.author_id for post in posts})
        authors = {
            user.id: user for user in self.store.find_edges(User, {"id": author_ids})
        } if author_ids else {}
        return [
            FeedPost(
                post=post,
                author=authors.get(post.author_id),
                is_own_post=post.author_id == viewer_id,
                timestamp=humanize_timestamp(post.created_at, now),
            )
            for post in posts
        ]
