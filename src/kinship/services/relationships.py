"""Follow, friend-request and block state machine.

The store commits one statement at a time, so every operation here is built
from check-then-act steps over single edges. Operations touching a single
edge are idempotent and safe to retry. Accepting a friend request touches
three rows and is run as a saga: forward progress through the steps, with one
compensation point after the last insert. Blocking inserts the block first and
then removes the pair's other edges best-effort.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from kinship.models import EdgeKind, EdgeStatus, RelationshipEdge, User
from kinship.services.errors import (
    InvalidOperation,
    NotFound,
    RelationshipCorrupted,
    RequestNotFound,
    SocialError,
    StoreUnavailable,
)

if TYPE_CHECKING:
    from kinship.repositories.edge_store import EdgeStore

logger = logging.getLogger(__name__)

# Benign "already in the desired state" reasons reported with changed=False.
ALREADY_FOLLOWING = "already_following"
NOT_FOLLOWING = "not_following"
ALREADY_REQUESTED = "already_requested"
ALREADY_FRIENDS = "already_friends"
ALREADY_ACCEPTED = "already_accepted"
ALREADY_REJECTED = "already_rejected"
NOT_REQUESTED = "not_requested"
ALREADY_BLOCKED = "already_blocked"
NOT_BLOCKED = "not_blocked"


@dataclass(frozen=True)
class RelationshipResult:
    """Outcome of a relationship mutation.

    Attributes:
        success: Always ``True`` for returned results; failures raise.
        changed: ``False`` when the pair was already in the requested state.
        message: Human readable summary for the caller.
        reason: Machine readable code for unchanged outcomes.
        incomplete: Best-effort steps that failed without aborting the operation.
    """

    success: bool
    changed: bool
    message: str
    reason: str | None = None
    incomplete: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class FollowCounts:
    """Follower, following and friend totals recomputed from edges."""

    following_count: int
    followers_count: int
    friends_count: int


@dataclass(frozen=True)
class PendingRequest:
    """A pending friend request together with the other party's profile."""

    edge: RelationshipEdge
    profile: User

    @property
    def requested_at(self) -> datetime:
        """Return when the request was sent."""
        return self.edge.created_at


def _changed(message: str, incomplete: Iterable[str] = ()) -> RelationshipResult:
    return RelationshipResult(
        success=True,
        changed=True,
        message=message,
        incomplete=tuple(incomplete),
    )


def _unchanged(message: str, reason: str) -> RelationshipResult:
    return RelationshipResult(success=True, changed=False, message=message, reason=reason)


def _edge(source_id: str, target_id: str, kind: EdgeKind, **extra: object) -> dict[str, object]:
    filters: dict[str, object] = {"source_id": source_id, "target_id": target_id, "kind": kind}
    filters.update(extra)
    return filters


class RelationshipEngine:
    """Enforce the relationship state machine on top of an :class:`EdgeStore`."""

    def __init__(self, store: EdgeStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Follow / unfollow
    # ------------------------------------------------------------------

    def follow(self, actor_id: str, target_id: str) -> RelationshipResult:
        """Create ``Follow(actor -> target)`` unless it already exists.

        Raises:
            InvalidOperation: Self-follow, malformed ids or a blocked pair.
            NotFound: The target profile does not exist.
        """
        self._require_pair(actor_id, target_id, "follow")
        self._require_not_blocked(actor_id, target_id)

        if self.is_following(actor_id, target_id):
            return _unchanged("Already following this user", ALREADY_FOLLOWING)

        self._insert(
            _edge(actor_id, target_id, EdgeKind.FOLLOW, status=EdgeStatus.ACTIVE),
            "insert_follow",
        )
        logger.debug("User %s followed %s", actor_id, target_id)
        return _changed("Successfully followed user")

    def unfollow(self, actor_id: str, target_id: str) -> RelationshipResult:
        """Delete ``Follow(actor -> target)``; the reverse edge is never touched."""
        self._require_ids(actor_id, target_id)
        removed = self.store.delete_edges(
            RelationshipEdge,
            _edge(actor_id, target_id, EdgeKind.FOLLOW),
        )
        if not removed:
            return _unchanged("Not following this user", NOT_FOLLOWING)
        logger.debug("User %s unfollowed %s", actor_id, target_id)
        return _changed("Successfully unfollowed user")

    # ------------------------------------------------------------------
    # Friend requests
    # ------------------------------------------------------------------

    def send_friend_request(self, sender_id: str, target_id: str) -> RelationshipResult:
        """Create a pending ``FriendRequest(sender -> target)``.

        An existing pending request, or an accepted one while the pair are
        still mutual friends, is reported as unchanged. A rejected or stale
        accepted request is replaced by a fresh pending edge.
        """
        self._require_pair(sender_id, target_id, "send a friend request to")
        self._require_not_blocked(sender_id, target_id)

        existing = self.store.find_edge(
            RelationshipEdge,
            _edge(sender_id, target_id, EdgeKind.FRIEND_REQUEST),
        )
        if existing is not None and existing.status == EdgeStatus.PENDING.value:
            return _unchanged("Friend request already sent", ALREADY_REQUESTED)
        if self.are_mutual_friends(sender_id, target_id):
            return _unchanged("Already friends with this user", ALREADY_FRIENDS)
        if existing is not None:
            try:
                self.store.delete_edges(RelationshipEdge, {"id": existing.id})
            except StoreUnavailable as err:
                raise StoreUnavailable(err.message, step="remove_stale_request") from err

        self._insert(
            _edge(sender_id, target_id, EdgeKind.FRIEND_REQUEST, status=EdgeStatus.PENDING),
            "insert_friend_request",
        )
        logger.debug("User %s sent a friend request to %s", sender_id, target_id)
        return _changed("Friend request sent successfully")

    def accept_friend_request(self, requester_id: str, acceptor_id: str) -> RelationshipResult:
        """Accept ``FriendRequest(requester -> acceptor)`` and create both follows.

        A request that is already Accepted only gets any missing follow edge
        recreated, so retrying after ``insert_forward_follow`` finishes the
        friendship. Otherwise the steps run sequentially:

        1. ``Pending -> Accepted`` on the request. Zero affected rows means the
           request vanished (for example a concurrent cancel) unless a re-read
           shows it was accepted concurrently, which is a no-op success.
        2. Insert ``Follow(requester -> acceptor)``. A failure here is logged
           and the saga carries on to step 3.
        3. Insert ``Follow(acceptor -> requester)``. A failure here deletes the
           edge inserted in step 2 and moves the request to ``Rejected``.

        Raises:
            RequestNotFound: No pending request from ``requester_id``.
            StoreUnavailable: A step failed; ``step`` names which one. When the
                step is ``insert_reverse_follow`` the accept was rolled back.
            RelationshipCorrupted: The rollback itself failed.
        """
        self._require_pair(acceptor_id, requester_id, "accept a friend request from")
        self._require_not_blocked(acceptor_id, requester_id)

        request_filter = _edge(requester_id, acceptor_id, EdgeKind.FRIEND_REQUEST)
        request = self.store.find_edge(RelationshipEdge, request_filter)
        if request is None or request.status == EdgeStatus.REJECTED.value:
            raise RequestNotFound("No pending friend request from this user", step="accept_request")
        if request.status == EdgeStatus.ACCEPTED.value:
            return self._complete_accepted(requester_id, acceptor_id)

        try:
            updated = self.store.update_edges(
                RelationshipEdge,
                {**request_filter, "status": EdgeStatus.PENDING},
                {"status": EdgeStatus.ACCEPTED},
            )
        except StoreUnavailable as err:
            raise StoreUnavailable(err.message, step="accept_request") from err
        if not updated:
            current = self.store.find_edge(RelationshipEdge, request_filter)
            if current is not None and current.status == EdgeStatus.ACCEPTED.value:
                return _unchanged("Friend request already accepted", ALREADY_ACCEPTED)
            raise RequestNotFound("Friend request was withdrawn", step="accept_request")

        forward_id: int | None = None
        forward_failed = False
        try:
            forward = self._insert_follow_if_missing(requester_id, acceptor_id)
            forward_id = forward.id if forward is not None else None
        except StoreUnavailable:
            forward_failed = True
            logger.warning(
                "Follow %s -> %s failed while accepting a friend request; continuing",
                requester_id,
                acceptor_id,
            )

        try:
            self._insert_follow_if_missing(acceptor_id, requester_id)
        except StoreUnavailable as err:
            self._compensate_accept(requester_id, acceptor_id, forward_id)
            raise StoreUnavailable(
                "Could not create the mutual follow; the friend request was rolled back",
                step="insert_reverse_follow",
            ) from err

        if forward_failed:
            raise StoreUnavailable(
                "Friend request accepted but the requester's follow edge is missing",
                step="insert_forward_follow",
            )

        logger.debug("User %s accepted the friend request from %s", acceptor_id, requester_id)
        return _changed("Friend request accepted")

    def reject_friend_request(self, requester_id: str, actor_id: str) -> RelationshipResult:
        """Move a pending ``FriendRequest(requester -> actor)`` to ``Rejected``."""
        self._require_ids(requester_id, actor_id)
        request_filter = _edge(requester_id, actor_id, EdgeKind.FRIEND_REQUEST)
        request = self.store.find_edge(RelationshipEdge, request_filter)
        if request is None:
            raise RequestNotFound("No friend request from this user", step="reject_request")
        if request.status == EdgeStatus.REJECTED.value:
            return _unchanged("Friend request already rejected", ALREADY_REJECTED)
        if request.status == EdgeStatus.ACCEPTED.value:
            raise InvalidOperation("Friend request was already accepted; unfollow instead")

        if not self._reject(requester_id, actor_id, (EdgeStatus.PENDING,)):
            raise RequestNotFound("Friend request was withdrawn", step="reject_request")
        return _changed("Friend request rejected")

    def cancel_friend_request(self, sender_id: str, target_id: str) -> RelationshipResult:
        """Withdraw the sender's own request by deleting it while still pending."""
        self._require_ids(sender_id, target_id)
        request_filter = _edge(sender_id, target_id, EdgeKind.FRIEND_REQUEST)
        request = self.store.find_edge(RelationshipEdge, request_filter)
        if request is None:
            return _unchanged("No friend request to cancel", NOT_REQUESTED)
        if request.status != EdgeStatus.PENDING.value:
            raise RequestNotFound("No pending friend request to cancel", step="cancel_request")

        removed = self.store.delete_edges(
            RelationshipEdge,
            {**request_filter, "status": EdgeStatus.PENDING},
        )
        if not removed:
            raise RequestNotFound("Friend request is no longer pending", step="cancel_request")
        return _changed("Friend request cancelled")

    # ------------------------------------------------------------------
    # Blocking
    # ------------------------------------------------------------------

    def block_user(self, actor_id: str, target_id: str) -> RelationshipResult:
        """Create ``Block(actor -> target)`` and drop the pair's other edges.

        The block is inserted first so suppression starts immediately. Each
        follow and friend-request edge between the pair, in both directions,
        is then deleted independently; failures are logged and reported in
        ``incomplete`` instead of aborting.
        """
        self._require_pair(actor_id, target_id, "block")
        if self.store.find_edge(RelationshipEdge, _edge(actor_id, target_id, EdgeKind.BLOCK)):
            return _unchanged("User is already blocked", ALREADY_BLOCKED)

        self._insert(
            _edge(actor_id, target_id, EdgeKind.BLOCK, status=EdgeStatus.ACTIVE),
            "insert_block",
        )

        incomplete = []
        for step, filters in (
            ("remove_follow", _edge(actor_id, target_id, EdgeKind.FOLLOW)),
            ("remove_follower", _edge(target_id, actor_id, EdgeKind.FOLLOW)),
            ("remove_sent_request", _edge(actor_id, target_id, EdgeKind.FRIEND_REQUEST)),
            ("remove_received_request", _edge(target_id, actor_id, EdgeKind.FRIEND_REQUEST)),
        ):
            try:
                self.store.delete_edges(RelationshipEdge, filters)
            except StoreUnavailable:
                logger.warning("Block %s -> %s: %s failed", actor_id, target_id, step)
                incomplete.append(step)

        return _changed("User blocked successfully", incomplete)

    def unblock_user(self, actor_id: str, target_id: str) -> RelationshipResult:
        """Delete ``Block(actor -> target)``; earlier edges are not restored."""
        self._require_ids(actor_id, target_id)
        removed = self.store.delete_edges(
            RelationshipEdge,
            _edge(actor_id, target_id, EdgeKind.BLOCK),
        )
        if not removed:
            return _unchanged("User is not blocked", NOT_BLOCKED)
        return _changed("User unblocked successfully")

    def is_blocked_between(self, user_a: str, user_b: str) -> bool:
        """Return True if either user blocks the other."""
        return self.store.find_edge(
            RelationshipEdge,
            {"kind": EdgeKind.BLOCK, "source_id": [user_a, user_b], "target_id": [user_a, user_b]},
        ) is not None

    # ------------------------------------------------------------------
    # Predicates and reads
    # ------------------------------------------------------------------

    def is_following(self, actor_id: str, target_id: str) -> bool:
        """Return True only for an Active ``Follow(actor -> target)``."""
        return self.store.find_edge(
            RelationshipEdge,
            _edge(actor_id, target_id, EdgeKind.FOLLOW, status=EdgeStatus.ACTIVE),
        ) is not None

    def are_mutual_friends(self, user_a: str, user_b: str) -> bool:
        """Return True when Active follows exist in both directions."""
        return self.is_following(user_a, user_b) and self.is_following(user_b, user_a)

    def following_ids(self, user_id: str) -> list[str]:
        """Return ids the user actively follows, most recent first."""
        edges = self.store.find_edges(
            RelationshipEdge,
            {"source_id": user_id, "kind": EdgeKind.FOLLOW, "status": EdgeStatus.ACTIVE},
            order_by="created_at",
        )
        return [edge.target_id for edge in edges]

    def follower_ids(self, user_id: str) -> list[str]:
        """Return ids actively following the user, most recent first."""
        edges = self.store.find_edges(
            RelationshipEdge,
            {"target_id": user_id, "kind": EdgeKind.FOLLOW, "status": EdgeStatus.ACTIVE},
            order_by="created_at",
        )
        return [edge.source_id for edge in edges]

    def blocked_ids(self, user_id: str) -> set[str]:
        """Return everyone the user blocks or is blocked by."""
        outgoing = self.store.find_edges(
            RelationshipEdge, {"source_id": user_id, "kind": EdgeKind.BLOCK}
        )
        incoming = self.store.find_edges(
            RelationshipEdge, {"target_id": user_id, "kind": EdgeKind.BLOCK}
        )
        return {edge.target_id for edge in outgoing} | {edge.source_id for edge in incoming}

    def get_followers(self, user_id: str) -> list[User]:
        """Return profiles following the user."""
        return self._profiles(self.follower_ids(user_id))

    def get_following(self, user_id: str) -> list[User]:
        """Return profiles the user follows."""
        return self._profiles(self.following_ids(user_id))

    def get_mutual_friends(self, user_id: str) -> list[User]:
        """Return profiles sharing Active follows with the user in both directions."""
        followers = set(self.follower_ids(user_id))
        return self._profiles([uid for uid in self.following_ids(user_id) if uid in followers])

    def get_received_friend_requests(self, user_id: str) -> list[PendingRequest]:
        """Return pending requests addressed to the user."""
        edges = self.store.find_edges(
            RelationshipEdge,
            {"target_id": user_id, "kind": EdgeKind.FRIEND_REQUEST, "status": EdgeStatus.PENDING},
            order_by="created_at",
        )
        return self._pending(edges, lambda edge: edge.source_id)

    def get_sent_friend_requests(self, user_id: str) -> list[PendingRequest]:
        """Return pending requests the user has sent."""
        edges = self.store.find_edges(
            RelationshipEdge,
            {"source_id": user_id, "kind": EdgeKind.FRIEND_REQUEST, "status": EdgeStatus.PENDING},
            order_by="created_at",
        )
        return self._pending(edges, lambda edge: edge.target_id)

    def get_blocked_users(self, user_id: str) -> list[User]:
        """Return profiles the user has blocked."""
        edges = self.store.find_edges(
            RelationshipEdge,
            {"source_id": user_id, "kind": EdgeKind.BLOCK},
            order_by="created_at",
        )
        return self._profiles([edge.target_id for edge in edges])

    def get_follow_counts(self, user_id: str) -> FollowCounts:
        """Recompute follow totals from the edge table."""
        following = self.following_ids(user_id)
        followers = set(self.follower_ids(user_id))
        return FollowCounts(
            following_count=len(following),
            followers_count=len(followers),
            friends_count=sum(1 for uid in following if uid in followers),
        )

    def get_suggested_users(self, user_id: str, limit: int) -> list[User]:
        """Return the newest profiles the user neither follows nor has blocked."""
        excluded = {user_id, *self.following_ids(user_id), *self.blocked_ids(user_id)}
        candidates = self.store.find_edges(
            User,
            {},
            order_by="created_at",
            limit=limit + len(excluded),
        )
        return [user for user in candidates if user.id not in excluded][:limit]

    def get_profile(self, user_id: str) -> User:
        """Return the profile or raise :class:`NotFound`."""
        _require_uuid(user_id)
        profile = self.store.get(User, user_id)
        if profile is None:
            raise NotFound("User not found")
        return profile

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _insert(self, values: dict[str, object], step: str) -> RelationshipEdge:
        try:
            return self.store.insert_edge(RelationshipEdge, values)
        except StoreUnavailable as err:
            raise StoreUnavailable(err.message, step=step) from err

    def _insert_follow_if_missing(self, source_id: str, target_id: str) -> RelationshipEdge | None:
        if self.is_following(source_id, target_id):
            return None
        return self.store.insert_edge(
            RelationshipEdge,
            _edge(source_id, target_id, EdgeKind.FOLLOW, status=EdgeStatus.ACTIVE),
        )

    def _complete_accepted(self, requester_id: str, acceptor_id: str) -> RelationshipResult:
        # A retry after a failed forward insert finds the request Accepted with
        # one follow missing; recreate whichever direction is absent.
        repaired = False
        for source_id, target_id, step in (
            (requester_id, acceptor_id, "insert_forward_follow"),
            (acceptor_id, requester_id, "insert_reverse_follow"),
        ):
            try:
                repaired |= self._insert_follow_if_missing(source_id, target_id) is not None
            except StoreUnavailable as err:
                raise StoreUnavailable(err.message, step=step) from err
        if repaired:
            logger.info("Completed accepted friend request %s -> %s", requester_id, acceptor_id)
            return _changed("Friend request accepted")
        return _unchanged("Friend request already accepted", ALREADY_ACCEPTED)

    def _reject(
        self,
        requester_id: str,
        actor_id: str,
        from_statuses: tuple[EdgeStatus, ...],
    ) -> int:
        return self.store.update_edges(
            RelationshipEdge,
            _edge(requester_id, actor_id, EdgeKind.FRIEND_REQUEST, status=list(from_statuses)),
            {"status": EdgeStatus.REJECTED},
        )

    def _compensate_accept(
        self,
        requester_id: str,
        acceptor_id: str,
        forward_id: int | None,
    ) -> None:
        try:
            if forward_id is not None:
                self.store.delete_edges(RelationshipEdge, {"id": forward_id})
            self._reject(requester_id, acceptor_id, (EdgeStatus.PENDING, EdgeStatus.ACCEPTED))
        except SocialError as err:
            logger.error(
                "Rolling back friend request %s -> %s failed",
                requester_id,
                acceptor_id,
                exc_info=True,
            )
            raise RelationshipCorrupted(
                "Friend request could not be rolled back after a partial accept",
                step="compensate_accept",
            ) from err
        logger.warning(
            "Rolled back friend request %s -> %s after a failed follow", requester_id, acceptor_id
        )

    def _require_ids(self, *user_ids: str) -> None:
        for user_id in user_ids:
            _require_uuid(user_id)

    def _require_pair(self, actor_id: str, target_id: str, action: str) -> None:
        self._require_ids(actor_id, target_id)
        if actor_id == target_id:
            raise InvalidOperation(f"You cannot {action} yourself")
        if self.store.get(User, target_id) is None:
            raise NotFound("User not found")

    def _require_not_blocked(self, actor_id: str, target_id: str) -> None:
        if self.is_blocked_between(actor_id, target_id):
            raise InvalidOperation("This interaction is blocked")

    def _profiles(self, user_ids: list[str]) -> list[User]:
        if not user_ids:
            return []
        by_id = {user.id: user for user in self.store.find_edges(User, {"id": user_ids})}
        return [by_id[uid] for uid in user_ids if uid in by_id]

    def _pending(
        self,
        edges: list[RelationshipEdge],
        other: Callable[[RelationshipEdge], str],
    ) -> list[PendingRequest]:
        profiles = {user.id: user for user in self._profiles([other(edge) for edge in edges])}
        return [
            PendingRequest(edge=edge, profile=profiles[other(edge)])
            for edge in edges
            if other(edge) in profiles
        ]


def _require_uuid(user_id: str) -> None:
    try:
        uuid.UUID(str(user_id))
    except ValueError as err:
        raise InvalidOperation("Malformed user id") from err
