"""Service-level helpers for creating and removing posts."""
from __future__ import annotations

from typing import TYPE_CHECKING

from kinship.core.settings import settings
from kinship.models import Post
from kinship.services.errors import InvalidOperation, NotFound, PermissionDenied

if TYPE_CHECKING:
    from kinship.repositories.edge_store import EdgeStore


def create_post(
    *,
    store: EdgeStore,
    author_id: str,
    body: str,
    location: str | None = None,
    image_url: str | None = None,
) -> Post:
    """Persist a new post for ``author_id``.

    Counters start at zero; they are only ever written by the engagement
    synchronizer.

    Raises:
        InvalidOperation: If the body is empty or too long.
    """
    text = (body or "").strip()
    if not text:
        raise InvalidOperation("Post body cannot be empty")
    if len(text) > settings.post_max_length:
        raise InvalidOperation("Post body is too long")

    return store.insert_edge(
        Post,
        {
            "author_id": author_id,
            "body": text,
            "location": location,
            "image_url": image_url,
        },
    )


def get_visible_post(store: EdgeStore, post_id: int) -> Post:
    """Return a post that has not been deleted."""
    post = store.get(Post, post_id)
    if post is None or post.deleted:
        raise NotFound("Post not found")
    return post


def delete_post(store: EdgeStore, actor_id: str, post_id: int) -> None:
    """Soft-delete the actor's own post so it drops out of every feed."""
    post = get_visible_post(store, post_id)
    if post.author_id != actor_id:
        raise PermissionDenied("You can only delete your own posts")
    store.update_edges(Post, {"id": post_id}, {"deleted": True})
