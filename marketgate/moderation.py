"""
Comment moderation rules.

Deletion is decided by OwnershipGuard (comment author, parent owner or
admin). Likes are stored as a set of actor IDs; the like count is always
derived from that set, and each toggle is described as a set-membership
edit keyed on (comment, actor) so that concurrent toggles by the same actor
cannot double-count and toggles by different actors are all kept.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from marketgate.config import utc_clock
from marketgate.gates.account import AccountGate
from marketgate.gates.ownership import OwnershipGuard
from marketgate.storage import Mutation
from marketgate.types import (
    Action,
    ActorContext,
    Capability,
    Decision,
    DenialReason,
    LifecycleState,
    LoadedResource,
    NotFound,
    ResourceDescriptor,
    ResourceType,
)

logger = logging.getLogger(__name__)

COMMENTABLE_STATES = frozenset({LifecycleState.DRAFT, LifecycleState.PUBLISHED})


@dataclass(frozen=True)
class LikeResult:
    """
    Outcome of a like toggle.

    Attributes:
        decision: Whether the toggle is allowed.
        liked: Whether the actor likes the comment after the toggle.
        like_count: Number of likes after the toggle.
        mutation: The membership edit to persist (None when denied).
    """
    decision: Decision
    liked: bool
    like_count: int
    mutation: Mutation | None = None


class ModerationEngine:
    """
    Comment-specific rules layered on OwnershipGuard.

    Example:
        >>> moderation = ModerationEngine()
        >>> result = moderation.toggle_like(reader, comment)
        >>> result.liked, result.like_count
        (True, 1)
        >>> moderation.authorize_delete(blog_owner, comment).allowed
        True
    """

    def __init__(
        self,
        guard: OwnershipGuard | None = None,
        gate: AccountGate | None = None,
        clock: Callable[[], datetime] = utc_clock,
    ) -> None:
        self._guard = guard or OwnershipGuard()
        self._gate = gate or AccountGate()
        self._clock = clock

    def authorize_delete(self, actor: ActorContext | None, comment: LoadedResource) -> Decision:
        """Decide whether an actor may delete a comment."""
        if isinstance(comment, ResourceDescriptor) and not comment.is_comment:
            raise ValueError(f"{comment.label} is not a comment")
        return self._guard.authorize(actor, comment, Action.DELETE)

    def toggle_like(self, actor: ActorContext | None, comment: LoadedResource) -> LikeResult:
        """
        Toggle the actor's like on a comment.

        If the actor is already in ``liked_by`` they are removed, otherwise
        added. The returned mutation edits only that actor's membership.

        Returns:
            LikeResult. When denied, ``liked`` and ``like_count`` describe
            the unchanged snapshot.
        """
        if isinstance(comment, ResourceDescriptor) and not comment.is_comment:
            raise ValueError(f"{comment.label} is not a comment")

        decision = self._guard.authorize(actor, comment, Action.LIKE)
        if decision.denied or actor is None or isinstance(comment, NotFound):
            like_count = comment.like_count if isinstance(comment, ResourceDescriptor) else 0
            return LikeResult(decision, liked=False, like_count=like_count)

        member = frozenset({actor.actor_id})
        if actor.actor_id in comment.liked_by:
            liked_by = comment.liked_by - member
            mutation = Mutation(
                resource_type=ResourceType.COMMENT,
                resource_id=comment.resource_id,
                remove_members={"liked_by": member},
            )
            liked = False
        else:
            liked_by = comment.liked_by | member
            mutation = Mutation(
                resource_type=ResourceType.COMMENT,
                resource_id=comment.resource_id,
                add_members={"liked_by": member},
            )
            liked = True

        logger.debug(
            f"Like toggle on {comment.label} by '{actor.actor_id}': "
            f"{'liked' if liked else 'unliked'}"
        )
        return LikeResult(decision, liked=liked, like_count=len(liked_by), mutation=mutation)

    def authorize_create(self, actor: ActorContext | None, parent: LoadedResource) -> Decision:
        """
        Decide whether an actor may comment on a parent resource.

        Any identified actor may comment, but only under an existing parent
        that is in draft or published state. A missing parent is denied with
        ``not_owner``, a suspended one with ``parent_unavailable``.
        """
        decision = self._gate.can_perform(actor, Capability.CREATE, ResourceType.COMMENT)
        if decision.denied:
            return decision

        if isinstance(parent, NotFound):
            logger.debug(f"Comment on missing parent {parent.label} denied")
            return Decision.deny(
                DenialReason.NOT_OWNER,
                "parent resource not found",
                rule="comment_parent",
                metadata={"not_found": True},
            )

        if parent.is_comment:
            raise ValueError("comments are attached to blog posts or listings, not comments")

        if parent.state not in COMMENTABLE_STATES:
            logger.debug(f"Comment on {parent.label} denied: parent is {parent.state.value}")
            return Decision.deny(
                DenialReason.PARENT_UNAVAILABLE,
                f"cannot comment on a {parent.state.value} resource",
                rule="comment_parent",
            )

        return Decision.allow("comment allowed", rule="comment_parent")

    def new_comment(
        self,
        actor: ActorContext,
        parent: ResourceDescriptor,
        comment_id: str,
        now: datetime | None = None,
    ) -> ResourceDescriptor:
        """
        Build the descriptor for a new comment by ``actor`` under ``parent``.

        Call :meth:`authorize_create` first; this method only assembles the
        snapshot to persist.
        """
        return ResourceDescriptor(
            resource_type=ResourceType.COMMENT,
            resource_id=comment_id,
            owner_id=actor.actor_id,
            parent_id=parent.resource_id,
            parent_owner_id=parent.owner_id,
            created_at=now or self._clock(),
        )
