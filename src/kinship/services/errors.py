"""Error taxonomy shared by the relationship, engagement and feed services.

Store-level exceptions never reach callers directly: the edge store turns them
into :class:`StoreUnavailable`, and the services raise the more specific
classes below. "Already in the desired state" outcomes are not errors at all;
they are reported through result objects.
"""

from __future__ import annotations


class SocialError(RuntimeError):
    """Base exception for every failure surfaced by the social core.

    Attributes:
        step: Name of the step that failed inside a multi-step operation, or
            ``None`` for single-step operations.
    """

    def __init__(self, message: str, *, step: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.step = step


class InvalidOperation(SocialError):
    """Self-targeting, blocked pairs or malformed identifiers. Never retried."""


class NotFound(SocialError):
    """The referenced profile, post or comment does not exist."""


class PermissionDenied(SocialError):
    """The actor tried to modify content owned by someone else."""


class RequestNotFound(SocialError):
    """The edge a transition expected to find was absent.

    Typically a race (the sender cancelled while the receiver accepted) or a
    stale client.
    """


class RelationshipCorrupted(SocialError):
    """Compensation after a partial multi-step failure itself failed.

    Fatal and never retried automatically: the store is in an unknown partial
    state and a retry could create duplicate or conflicting edges.
    """


class StoreUnavailable(SocialError):
    """Transport or infrastructure failure talking to the store.

    Safe to retry for read predicates and single-edge mutations. Multi-step
    operations must re-read current state before any retry.
    """
