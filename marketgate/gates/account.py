"""
Account-level capability gate.

Decides whether an actor may perform a capability on a resource type from
their account type and subscription state alone, independent of any
specific resource instance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from marketgate.types import (
    AccountType,
    ActorContext,
    Capability,
    Decision,
    DenialReason,
    ResourceType,
    SubscriptionStatus,
)

logger = logging.getLogger(__name__)

_PAID = frozenset({SubscriptionStatus.ACTIVE})
_PAID_OR_TRIAL = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIAL})


@dataclass(frozen=True)
class Requirement:
    """Account types and subscription states that satisfy one table row."""
    account_types: frozenset[AccountType]
    subscriptions: frozenset[SubscriptionStatus]

    def describe(self) -> str:
        types = "/".join(sorted(t.value for t in self.account_types))
        subs = "/".join(sorted(s.value for s in self.subscriptions))
        return f"account type {types} with subscription {subs}"


class AccountGate:
    """
    Capability gate keyed on account type and subscription status.

    Both the account type and the subscription must satisfy the row for the
    requested resource type. Admins never receive creation capabilities from
    this gate; their power is expressed through OwnershipGuard instead. For
    every other gated capability admins bypass the table.

    Example:
        >>> gate = AccountGate()
        >>> gate.can_perform(seller, Capability.CREATE, ResourceType.PRODUCT).allowed
        True
    """

    def __init__(self, allow_trial_listings: bool = True) -> None:
        """
        Initialize the gate.

        Args:
            allow_trial_listings: Whether a trial subscription satisfies the
                directory-listing row. The trial window itself is enforced by
                the subscription collaborator.
        """
        listing_subs = _PAID_OR_TRIAL if allow_trial_listings else _PAID
        self._requirements: dict[ResourceType, Requirement] = {
            ResourceType.PROVIDER_PROFILE: Requirement(
                frozenset({AccountType.PROVIDER}), _PAID,
            ),
            ResourceType.PRODUCT: Requirement(
                frozenset({AccountType.PRODUCT_SELLER}), _PAID,
            ),
            ResourceType.BLOG_POST: Requirement(
                frozenset({AccountType.PROVIDER, AccountType.PRODUCT_SELLER}), _PAID,
            ),
            ResourceType.DIRECTORY_LISTING: Requirement(
                frozenset({AccountType.PROVIDER, AccountType.PRODUCT_SELLER}), listing_subs,
            ),
        }

    def requirement_for(self, resource_type: ResourceType) -> Requirement | None:
        """Get the table row for a resource type (None for comments)."""
        return self._requirements.get(ResourceType(resource_type))

    def can_perform(
        self,
        actor: ActorContext | None,
        capability: Capability,
        resource_type: ResourceType,
    ) -> Decision:
        """
        Decide whether an actor may perform a capability on a resource type.

        Args:
            actor: The identified actor, or None for an anonymous caller.
            capability: The capability being requested.
            resource_type: The type of resource the capability targets.

        Returns:
            Decision, denied with ``insufficient_account_type``,
            ``subscription_required`` or ``authentication_required``.

        Raises:
            ValueError: If the capability does not apply to the resource type
                (for example liking a product or publishing a comment).
        """
        capability = Capability(capability)
        resource_type = ResourceType(resource_type)

        if actor is None:
            return self._deny(
                None, capability, resource_type,
                DenialReason.AUTHENTICATION_REQUIRED,
                "an identified actor is required",
            )

        if capability is Capability.VIEW_DRAFT:
            if resource_type is ResourceType.COMMENT:
                raise ValueError("comments have no draft state")
            return Decision.allow(
                "viewing drafts is decided by ownership",
                rule="view_draft",
                metadata={"delegated_to": "ownership_guard"},
            )

        if resource_type is ResourceType.COMMENT:
            if capability in (Capability.CREATE, Capability.LIKE):
                return Decision.allow(
                    f"any identified actor may {capability.value} comments",
                    rule=f"{capability.value}:comment",
                )
            raise ValueError(f"capability '{capability.value}' does not apply to comments")

        if capability is Capability.LIKE:
            raise ValueError(f"only comments can be liked, not {resource_type.value}")

        if capability is Capability.PUBLISH and actor.is_admin:
            return Decision.allow(
                "admin bypasses the publish requirements",
                rule=f"publish:{resource_type.value}",
                metadata={"admin_bypass": True},
            )

        if capability is Capability.CREATE and actor.is_admin:
            return self._deny(
                actor, capability, resource_type,
                DenialReason.INSUFFICIENT_ACCOUNT_TYPE,
                "admin accounts are never granted creation capabilities",
            )

        requirement = self._requirements[resource_type]
        rule = f"{capability.value}:{resource_type.value}"

        if actor.account_type not in requirement.account_types:
            return self._deny(
                actor, capability, resource_type,
                DenialReason.INSUFFICIENT_ACCOUNT_TYPE,
                f"requires {requirement.describe()}",
            )

        if actor.subscription_status not in requirement.subscriptions:
            return self._deny(
                actor, capability, resource_type,
                DenialReason.SUBSCRIPTION_REQUIRED,
                f"requires {requirement.describe()}",
                metadata={"subscription_status": actor.subscription_status.value},
            )

        return Decision.allow(f"actor satisfies {requirement.describe()}", rule=rule)

    def _deny(
        self,
        actor: ActorContext | None,
        capability: Capability,
        resource_type: ResourceType,
        reason: DenialReason,
        message: str,
        metadata: dict | None = None,
    ) -> Decision:
        logger.debug(
            f"AccountGate: denying {capability.value} {resource_type.value} for "
            f"actor '{actor.actor_id if actor else 'anonymous'}': {reason.value}"
        )
        return Decision.deny(
            reason,
            message,
            rule=f"{capability.value}:{resource_type.value}",
            metadata=metadata,
        )
