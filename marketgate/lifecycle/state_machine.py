"""
Lifecycle state machine for listing-like resources.

    draft --publish--> published --suspend (admin)--> suspended
      ^                                                   |
      +-------------------- recover (admin) --------------+

Publishing is a one-way commitment: ``published -> draft`` does not exist,
and the first-publish timestamp is written once and never overwritten.
Re-publishing an already published resource is an idempotent no-op.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from marketgate.config import utc_clock
from marketgate.gates.ownership import OwnershipGuard
from marketgate.storage import Mutation
from marketgate.types import (
    Action,
    ActorContext,
    Decision,
    DenialReason,
    LifecycleState,
    LoadedResource,
    NotFound,
    ResourceDescriptor,
)

logger = logging.getLogger(__name__)


class TransitionAuthority(str, Enum):
    """Who may trigger a transition."""
    OWNER = "owner"
    ADMIN = "admin"


TRANSITIONS: dict[tuple[LifecycleState, LifecycleState], TransitionAuthority] = {
    (LifecycleState.DRAFT, LifecycleState.PUBLISHED): TransitionAuthority.OWNER,
    (LifecycleState.PUBLISHED, LifecycleState.SUSPENDED): TransitionAuthority.ADMIN,
    (LifecycleState.SUSPENDED, LifecycleState.DRAFT): TransitionAuthority.ADMIN,
}


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of a transition request.

    Attributes:
        decision: Whether the transition is allowed, with a reason if not.
        previous_state: State of the snapshot the request was made against.
        new_state: State after the transition (unchanged when denied).
        mutation: The write to persist. None when denied or idempotent.
        published_at: Effective first-publish timestamp after the transition.
    """
    decision: Decision
    previous_state: LifecycleState | None
    new_state: LifecycleState | None
    mutation: Mutation | None = None
    published_at: datetime | None = None

    @property
    def allowed(self) -> bool:
        return self.decision.allowed

    @property
    def changed(self) -> bool:
        return self.mutation is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "decision": self.decision.to_dict(),
            "previous_state": self.previous_state.value if self.previous_state else None,
            "new_state": self.new_state.value if self.new_state else None,
            "mutation": self.mutation.to_dict() if self.mutation else None,
            "published_at": self.published_at.isoformat() if self.published_at else None,
        }


class ResourceStateMachine:
    """
    Validates lifecycle transitions and describes their side effects.

    Example:
        >>> machine = ResourceStateMachine()
        >>> result = machine.transition(owner, draft_listing, LifecycleState.PUBLISHED)
        >>> result.new_state
        <LifecycleState.PUBLISHED: 'published'>
        >>> store.apply(result.mutation)
    """

    def __init__(
        self,
        guard: OwnershipGuard | None = None,
        clock: Callable[[], datetime] = utc_clock,
    ) -> None:
        self._guard = guard or OwnershipGuard()
        self._clock = clock

    @staticmethod
    def allowed_targets(state: LifecycleState) -> list[LifecycleState]:
        """List the states reachable from ``state`` in one transition."""
        return [target for (source, target) in TRANSITIONS if source is state]

    def transition(
        self,
        actor: ActorContext | None,
        resource: LoadedResource,
        target_state: LifecycleState,
        now: datetime | None = None,
    ) -> TransitionResult:
        """
        Request a lifecycle transition.

        Args:
            actor: The identified actor, or None for an anonymous caller.
            resource: Snapshot of the resource (or NotFound).
            target_state: The requested state.
            now: Current time. Defaults to the machine's clock.

        Returns:
            TransitionResult. Invalid transitions are always reported as
            ``invalid_transition`` regardless of who asks.
        """
        target = LifecycleState(target_state)

        if isinstance(resource, NotFound):
            decision = self._guard.authorize(actor, resource, Action.PUBLISH)
            return TransitionResult(decision, None, None)

        current = resource.state
        if resource.is_comment or current is None:
            return self._invalid(actor, resource, current, target)

        if current is LifecycleState.PUBLISHED and target is LifecycleState.PUBLISHED:
            decision = self._guard.authorize(actor, resource, Action.PUBLISH)
            if decision.denied:
                return TransitionResult(
                    decision, current, current, published_at=resource.published_at
                )
            return TransitionResult(
                Decision.allow(
                    "already published",
                    rule="publish_idempotent",
                    metadata={"idempotent": True},
                ),
                current,
                current,
                published_at=resource.published_at,
            )

        authority = TRANSITIONS.get((current, target))
        if authority is None:
            return self._invalid(actor, resource, current, target)

        decision = self._authorize(actor, resource, authority)
        if decision.denied:
            return TransitionResult(
                decision, current, current, published_at=resource.published_at
            )

        when = now or self._clock()
        mutation, published_at = self._side_effects(resource, current, target, when)
        logger.debug(
            f"Transition {resource.label}: {current.value} -> {target.value} "
            f"by '{actor.actor_id if actor else 'anonymous'}'"
        )
        return TransitionResult(
            Decision.allow(
                f"{current.value} -> {target.value}",
                rule=f"{current.value}->{target.value}",
            ),
            current,
            target,
            mutation=mutation,
            published_at=published_at,
        )

    def _authorize(
        self,
        actor: ActorContext | None,
        resource: ResourceDescriptor,
        authority: TransitionAuthority,
    ) -> Decision:
        if authority is TransitionAuthority.OWNER:
            return self._guard.authorize(actor, resource, Action.PUBLISH)

        if actor is None:
            return Decision.deny(
                DenialReason.AUTHENTICATION_REQUIRED,
                "an identified actor is required",
                rule="admin_only",
            )
        if not actor.is_admin:
            logger.debug(
                f"Transition on {resource.label} denied for '{actor.actor_id}': admin only"
            )
            return Decision.deny(
                DenialReason.INSUFFICIENT_ACCOUNT_TYPE,
                "only an admin may suspend or recover a resource",
                rule="admin_only",
            )
        return Decision.allow("admin", rule="admin_only")

    @staticmethod
    def _side_effects(
        resource: ResourceDescriptor,
        current: LifecycleState,
        target: LifecycleState,
        when: datetime,
    ) -> tuple[Mutation, datetime | None]:
        set_fields: dict[str, Any] = {"state": target, "updated_at": when}
        set_if_absent: dict[str, Any] = {}
        published_at = resource.published_at

        if target is LifecycleState.PUBLISHED:
            set_if_absent["published_at"] = when
            if published_at is None:
                published_at = when
        elif target is LifecycleState.SUSPENDED:
            set_fields["suspended_at"] = when
        elif current is LifecycleState.SUSPENDED:
            set_fields["suspended_at"] = None

        mutation = Mutation(
            resource_type=resource.resource_type,
            resource_id=resource.resource_id,
            expect={"state": current},
            set_fields=set_fields,
            set_if_absent=set_if_absent,
        )
        return mutation, published_at

    @staticmethod
    def _invalid(
        actor: ActorContext | None,
        resource: ResourceDescriptor,
        current: LifecycleState | None,
        target: LifecycleState,
    ) -> TransitionResult:
        source = current.value if current else "none"
        logger.debug(
            f"Invalid transition on {resource.label}: {source} -> {target.value} "
            f"requested by '{actor.actor_id if actor else 'anonymous'}'"
        )
        return TransitionResult(
            Decision.deny(
                DenialReason.INVALID_TRANSITION,
                f"cannot move from {source} to {target.value}",
                rule="transition_table",
                metadata={"from": source, "to": target.value},
            ),
            current,
            current,
            published_at=resource.published_at,
        )
