"""
LifecycleEngine: single entry point for request handlers.

The engine composes the account gate, ownership guard, state machine,
moderation rules, feature evaluator and click tracker behind one object.
It is a pure decision layer: route handlers load snapshots, ask the engine,
and persist the returned mutations. When a ResourceStore is supplied the
engine can also do the loading and persisting for them.
"""

from __future__ import annotations

import logging
from datetime import datetime

from marketgate.audit import InMemoryDecisionLog
from marketgate.config import EngineConfig
from marketgate.exceptions import ConfigurationError
from marketgate.featuring import FeatureExpiryEvaluator, FeatureGrant
from marketgate.gates.account import AccountGate
from marketgate.gates.ownership import OwnershipGuard
from marketgate.lifecycle.state_machine import ResourceStateMachine, TransitionResult
from marketgate.moderation import LikeResult, ModerationEngine
from marketgate.policies.registry import PolicyRegistry
from marketgate.storage import ClickStore, Mutation, ResourceStore
from marketgate.tracking import ClickOutcome, ClickTracker
from marketgate.types import (
    Action,
    ActorContext,
    Capability,
    Decision,
    LifecycleState,
    LoadedResource,
    NotFound,
    ResourceDescriptor,
    ResourceType,
)

logger = logging.getLogger(__name__)


class LifecycleEngine:
    """
    Access-controlled content lifecycle engine.

    Example:
        >>> engine = LifecycleEngine(store=InMemoryResourceStore())
        >>>
        >>> decision = engine.can_perform(seller, Capability.CREATE, ResourceType.PRODUCT)
        >>> if decision.allowed:
        ...     store.put(new_product)
        >>>
        >>> result = engine.publish(seller, new_product)
        >>> if result.allowed and result.mutation:
        ...     engine.apply(result.mutation)
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        store: ResourceStore | None = None,
        click_store: ClickStore | None = None,
        decision_log: InMemoryDecisionLog | None = None,
        registry: PolicyRegistry | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            config: Engine configuration. Defaults to EngineConfig().
            store: Optional resource store used by ``load`` and ``apply``.
            click_store: Optional click store; required for ``record_click``.
            decision_log: Optional log that receives every decision.
            registry: Optional policy registry for the ownership guard.
        """
        self._config = config or EngineConfig()
        self._store = store
        self._decision_log = decision_log
        clock = self._config.clock

        self._gate = AccountGate(allow_trial_listings=self._config.allow_trial_listings)
        self._guard = OwnershipGuard(registry)
        self._state_machine = ResourceStateMachine(self._guard, clock=clock)
        self._moderation = ModerationEngine(self._guard, self._gate, clock=clock)
        self._features = FeatureExpiryEvaluator(
            self._guard,
            duration_days=self._config.feature_duration_days,
            clock=clock,
        )
        self._click_tracker = (
            ClickTracker(click_store, clock=clock) if click_store is not None else None
        )

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def account_gate(self) -> AccountGate:
        return self._gate

    @property
    def ownership_guard(self) -> OwnershipGuard:
        return self._guard

    @property
    def state_machine(self) -> ResourceStateMachine:
        return self._state_machine

    @property
    def moderation(self) -> ModerationEngine:
        return self._moderation

    @property
    def features(self) -> FeatureExpiryEvaluator:
        return self._features

    # ==================== Authorization ====================

    def can_perform(
        self,
        actor: ActorContext | None,
        capability: Capability,
        resource_type: ResourceType,
    ) -> Decision:
        """Account-level capability check (see AccountGate)."""
        capability = Capability(capability)
        resource_type = ResourceType(resource_type)
        decision = self._gate.can_perform(actor, capability, resource_type)
        self._record("can_perform", actor, resource_type.value, capability.value, decision)
        return decision

    def authorize(
        self,
        actor: ActorContext | None,
        resource: LoadedResource,
        action: Action,
    ) -> Decision:
        """Instance-level authorization (see OwnershipGuard)."""
        action = Action(action)
        decision = self._guard.authorize(actor, resource, action)
        self._record("authorize", actor, resource.label, action.value, decision)
        return decision

    def check_or_raise(
        self,
        actor: ActorContext | None,
        resource: LoadedResource,
        action: Action,
    ) -> Decision:
        """
        Authorize and raise if denied.

        Raises:
            AuthorizationError: If the decision is a denial.
        """
        decision = self.authorize(actor, resource, action)
        decision.raise_if_denied(actor, Action(action).value, resource.label)
        return decision

    # ==================== Lifecycle ====================

    def transition(
        self,
        actor: ActorContext | None,
        resource: LoadedResource,
        target_state: LifecycleState,
        now: datetime | None = None,
    ) -> TransitionResult:
        """Request a lifecycle transition (see ResourceStateMachine)."""
        target = LifecycleState(target_state)
        result = self._state_machine.transition(actor, resource, target, now=now)
        self._record("transition", actor, resource.label, target.value, result.decision)
        return result

    def publish(
        self,
        actor: ActorContext | None,
        resource: LoadedResource,
        now: datetime | None = None,
    ) -> TransitionResult:
        """
        Publish a resource.

        Checks the publish capability for the actor's account type and
        subscription before asking the state machine for the transition.
        """
        if isinstance(resource, ResourceDescriptor) and not resource.is_comment:
            decision = self._gate.can_perform(actor, Capability.PUBLISH, resource.resource_type)
            if decision.denied:
                self._record("publish", actor, resource.label, Capability.PUBLISH.value, decision)
                return TransitionResult(
                    decision,
                    resource.state,
                    resource.state,
                    published_at=resource.published_at,
                )
        return self.transition(actor, resource, LifecycleState.PUBLISHED, now=now)

    # ==================== Moderation ====================

    def authorize_delete(self, actor: ActorContext | None, comment: LoadedResource) -> Decision:
        decision = self._moderation.authorize_delete(actor, comment)
        self._record("authorize_delete", actor, comment.label, Action.DELETE.value, decision)
        return decision

    def toggle_like(self, actor: ActorContext | None, comment: LoadedResource) -> LikeResult:
        result = self._moderation.toggle_like(actor, comment)
        self._record("toggle_like", actor, comment.label, Action.LIKE.value, result.decision)
        return result

    def authorize_create_comment(
        self,
        actor: ActorContext | None,
        parent: LoadedResource,
    ) -> Decision:
        decision = self._moderation.authorize_create(actor, parent)
        self._record("create_comment", actor, parent.label, Action.CREATE.value, decision)
        return decision

    # ==================== Featuring ====================

    def is_effectively_featured(
        self,
        resource: ResourceDescriptor,
        now: datetime | None = None,
    ) -> bool:
        return self._features.is_effectively_featured(resource, now or self._config.now())

    def grant_feature(
        self,
        actor: ActorContext | None,
        resource: LoadedResource,
        now: datetime | None = None,
        duration_days: int | None = None,
    ) -> FeatureGrant:
        grant = self._features.grant(actor, resource, now=now, duration_days=duration_days)
        self._record("grant_feature", actor, resource.label, "feature", grant.decision)
        return grant

    def revoke_feature(self, actor: ActorContext | None, resource: LoadedResource) -> FeatureGrant:
        grant = self._features.revoke(actor, resource)
        self._record("revoke_feature", actor, resource.label, "unfeature", grant.decision)
        return grant

    # ==================== Click tracking ====================

    def record_click(
        self,
        session: str,
        listing_id: str,
        click_type: str,
        now: datetime | None = None,
    ) -> ClickOutcome:
        """
        Record a contact click (see ClickTracker).

        Raises:
            ConfigurationError: If the engine was built without a click store.
        """
        if self._click_tracker is None:
            raise ConfigurationError("click_store", expected="a ClickStore for click tracking")
        return self._click_tracker.record_click(session, listing_id, click_type, now=now)

    # ==================== Storage ====================

    def load(self, resource_type: ResourceType, resource_id: str) -> LoadedResource:
        return self._require_store().load(ResourceType(resource_type), resource_id)

    def load_comment(self, comment_id: str, parent_type: ResourceType) -> LoadedResource:
        """
        Load a comment together with its parent's owner.

        A missing parent leaves the comment without a parent owner, so
        only the comment author (or an admin) can delete it.
        """
        store = self._require_store()
        comment = store.load(ResourceType.COMMENT, comment_id)
        if isinstance(comment, NotFound):
            return comment
        if comment.parent_id is None:
            return comment.attach_parent(NotFound(ResourceType(parent_type), ""))
        parent = store.load(ResourceType(parent_type), comment.parent_id)
        if isinstance(parent, NotFound):
            logger.warning(f"Parent {parent.label} of comment {comment_id} not found")
        return comment.attach_parent(parent)

    def apply(self, mutation: Mutation | None) -> ResourceDescriptor:
        """
        Persist a mutation through the configured store.

        Raises:
            ConfigurationError: If no store is configured.
            ValueError: If there is nothing to apply.
            ConflictError: If the store detects a concurrent change.
        """
        if mutation is None:
            raise ValueError("no mutation to apply")
        return self._require_store().apply(mutation)

    def _require_store(self) -> ResourceStore:
        if self._store is None:
            raise ConfigurationError("store", expected="a ResourceStore")
        return self._store

    def _record(
        self,
        operation: str,
        actor: ActorContext | None,
        subject: str,
        action: str,
        decision: Decision,
    ) -> None:
        if decision.denied:
            logger.debug(
                f"{operation}: denied {action} on {subject} for "
                f"'{actor.actor_id if actor else 'anonymous'}' ({decision.reason.value})"
            )
        if self._decision_log is not None:
            self._decision_log.record(operation, actor, subject, action, decision)
