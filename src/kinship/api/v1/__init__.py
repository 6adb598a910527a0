# src/kinship/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    feed_router,
    posts_router,
    relationships_router,
    users_router,
)

__all__ = [
    "feed_router",
    "posts_router",
    "relationships_router",
    "users_router",
]
