"""
Instance-level ownership guard.

Rules are evaluated in order and the first match wins:

1. Admins are allowed every action except creation.
2. read/update/delete/publish/unpublish on a non-comment resource require
   the actor to be its owner.
3. Deleting a comment is allowed for the comment author or the owner of the
   parent the comment hangs off of.
4. Liking a comment is allowed for any identified actor.
5. Everything else is denied with ``not_owner``.

Rules 2-4 live in the policy classes registered for each resource type.
"""

from __future__ import annotations

import logging

from marketgate.policies import PolicyRegistry, default_registry
from marketgate.types import (
    Action,
    ActorContext,
    Decision,
    DenialReason,
    LoadedResource,
    NotFound,
)

logger = logging.getLogger(__name__)


class OwnershipGuard:
    """
    Decides whether an actor is authorized against a specific resource.

    Example:
        >>> guard = OwnershipGuard()
        >>> guard.authorize(owner, listing, Action.UPDATE).allowed
        True
        >>> guard.authorize(stranger, listing, Action.UPDATE).reason
        <DenialReason.NOT_OWNER: 'not_owner'>
    """

    def __init__(self, registry: PolicyRegistry | None = None) -> None:
        """
        Initialize the guard.

        Args:
            registry: Policy registry to consult. Defaults to the standard
                marketplace policies.
        """
        self._registry = registry if registry is not None else default_registry()

    @property
    def registry(self) -> PolicyRegistry:
        return self._registry

    def authorize(
        self,
        actor: ActorContext | None,
        resource: LoadedResource,
        action: Action,
    ) -> Decision:
        """
        Authorize an action on a loaded resource.

        Args:
            actor: The identified actor, or None for an anonymous caller.
            resource: The resource snapshot, or NotFound from the loader.
            action: The action being attempted.

        Returns:
            Decision. A NotFound resource is always denied with
            ``not_owner``; anonymous actors are denied with
            ``authentication_required``.
        """
        action = Action(action)

        if actor is None:
            return self._deny(
                None, resource, action,
                DenialReason.AUTHENTICATION_REQUIRED,
                "an identified actor is required",
                rule="anonymous",
            )

        if isinstance(resource, NotFound):
            return self._deny(
                actor, resource, action,
                DenialReason.NOT_OWNER,
                "resource not found",
                rule="not_found",
                metadata={"not_found": True},
            )

        if action is Action.CREATE:
            return self._deny(
                actor, resource, action,
                DenialReason.NOT_OWNER,
                "creation is decided by AccountGate",
                rule="default_deny",
            )

        if actor.is_admin:
            return Decision.allow("admin override", rule="admin_override")

        policy = self._registry.get_policy_instance(resource.resource_type, actor, resource)
        if policy.authorize(action):
            return Decision.allow(
                f"{type(policy).__name__} allows {action.value}",
                rule=f"{type(policy).__name__}.can_{action.value}",
            )

        return self._deny(
            actor, resource, action,
            DenialReason.NOT_OWNER,
            f"actor may not {action.value} this resource",
            rule="default_deny",
        )

    def _deny(
        self,
        actor: ActorContext | None,
        resource: LoadedResource,
        action: Action,
        reason: DenialReason,
        message: str,
        rule: str,
        metadata: dict | None = None,
    ) -> Decision:
        logger.debug(
            f"OwnershipGuard: denying {action.value} on {resource.label} for "
            f"actor '{actor.actor_id if actor else 'anonymous'}': {reason.value}"
        )
        return Decision.deny(reason, message, rule=rule, metadata=metadata)
