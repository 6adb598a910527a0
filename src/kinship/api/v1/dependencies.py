"""Shared API dependencies for authentication and service wiring."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from kinship.core.security import decode_subject
from kinship.core.settings import settings
from kinship.db.session import get_db
from kinship.models import User
from kinship.repositories.edge_store import EdgeStore
from kinship.services import EngagementSynchronizer, FeedComposer, RelationshipEngine

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        HTTPException: If token is invalid or user not found
    """
    try:
        subject = decode_subject(credentials.credentials)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    user = db.get(User, subject)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def get_store(db: SessionDep) -> EdgeStore:
    """Return an edge store bound to the request session."""
    return EdgeStore(db)


StoreDep = Annotated[EdgeStore, Depends(get_store)]


def get_relationship_engine(store: StoreDep) -> RelationshipEngine:
    """Return the relationship engine for this request."""
    return RelationshipEngine(store)


def get_engagement(store: StoreDep) -> EngagementSynchronizer:
    """Return the engagement synchronizer for this request."""
    return EngagementSynchronizer(store)


def get_feed_composer(store: StoreDep) -> FeedComposer:
    """Return a feed composer using the configured page size."""
    return FeedComposer(store, page_size=settings.feed_page_size)


# Type aliases for dependency injection
CurrentUserDep = Annotated[User, Depends(get_current_user)]
RelationshipsDep = Annotated[RelationshipEngine, Depends(get_relationship_engine)]
EngagementDep = Annotated[EngagementSynchronizer, Depends(get_engagement)]
FeedDep = Annotated[FeedComposer, Depends(get_feed_composer)]
