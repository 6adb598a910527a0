# src/kinship/services/__init__.py
"""Business logic services for the Kinship application."""

from .engagement import EngagementSynchronizer
from .feed import FeedComposer
from .relationships import RelationshipEngine

__all__ = [
    "EngagementSynchronizer",
    "FeedComposer",
    "RelationshipEngine",
]
