"""
Time-boxed feature flags.

A stored ``is_featured`` flag only counts while ``feature_expiration`` is in
the future. Expiry is evaluated lazily at read time, so the stored flag is
never mutated when it lapses and no background sweep is required. Ranking
and display code should always go through :meth:`is_effectively_featured`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from marketgate.config import DEFAULT_FEATURE_DURATION_DAYS, utc_clock
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
    ResourceType,
)

logger = logging.getLogger(__name__)

FEATURABLE_TYPES = frozenset({ResourceType.PRODUCT, ResourceType.DIRECTORY_LISTING})


@dataclass(frozen=True)
class FeatureGrant:
    """
    Outcome of a feature grant or revocation.

    Attributes:
        decision: Whether the change is allowed.
        expires_at: New feature expiration (None when denied or revoked).
        mutation: The write to persist (None when denied).
    """
    decision: Decision
    expires_at: datetime | None = None
    mutation: Mutation | None = None


class FeatureExpiryEvaluator:
    """
    Evaluates and grants time-boxed feature flags.

    Example:
        >>> evaluator = FeatureExpiryEvaluator()
        >>> evaluator.is_effectively_featured(listing, now)
        False
        >>> grant = evaluator.grant(owner, listing, now=now)
        >>> grant.expires_at - now
        datetime.timedelta(days=30)
    """

    def __init__(
        self,
        guard: OwnershipGuard | None = None,
        duration_days: int = DEFAULT_FEATURE_DURATION_DAYS,
        clock: Callable[[], datetime] = utc_clock,
    ) -> None:
        self._guard = guard or OwnershipGuard()
        self._duration = timedelta(days=duration_days)
        self._clock = clock

    @staticmethod
    def is_effectively_featured(resource: ResourceDescriptor, now: datetime) -> bool:
        """True only while the flag is set and its expiration is in the future."""
        return (
            resource.is_featured
            and resource.feature_expiration is not None
            and resource.feature_expiration > now
        )

    def expired(
        self,
        resources: Iterable[ResourceDescriptor],
        now: datetime | None = None,
    ) -> list[ResourceDescriptor]:
        """Resources whose stored flag is still set but no longer effective."""
        now = now or self._clock()
        return [
            r for r in resources
            if r.is_featured and not self.is_effectively_featured(r, now)
        ]

    def featured_first(
        self,
        resources: Iterable[ResourceDescriptor],
        now: datetime | None = None,
    ) -> list[ResourceDescriptor]:
        """Order resources with effectively featured ones first, otherwise stable."""
        now = now or self._clock()
        return sorted(resources, key=lambda r: not self.is_effectively_featured(r, now))

    def grant(
        self,
        actor: ActorContext | None,
        resource: LoadedResource,
        now: datetime | None = None,
        duration_days: int | None = None,
    ) -> FeatureGrant:
        """
        Feature a published product or directory listing.

        Owners may feature their own listing for the configured duration
        when it is not already effectively featured. Admins may feature any
        listing, for a custom number of days, and may extend a running
        feature.

        Args:
            actor: The identified actor, or None for an anonymous caller.
            resource: The listing snapshot (or NotFound).
            now: Current time. Defaults to the evaluator's clock.
            duration_days: Custom duration, admin only.

        Raises:
            ValueError: If the resource type cannot be featured, or
                ``duration_days`` is not positive.
        """
        decision = self._guard.authorize(actor, resource, Action.UPDATE)
        if decision.denied or actor is None or isinstance(resource, NotFound):
            return FeatureGrant(decision)

        if resource.resource_type not in FEATURABLE_TYPES:
            raise ValueError(f"{resource.resource_type.value} resources cannot be featured")
        if duration_days is not None and duration_days <= 0:
            raise ValueError("duration_days must be positive")

        if duration_days is not None and not actor.is_admin:
            return self._deny(
                actor, resource,
                DenialReason.INSUFFICIENT_ACCOUNT_TYPE,
                "only an admin may choose a custom feature duration",
            )

        if resource.state is not LifecycleState.PUBLISHED:
            return self._deny(
                actor, resource,
                DenialReason.NOT_PUBLISHED,
                "only published listings can be featured",
            )

        now = now or self._clock()
        if not actor.is_admin and self.is_effectively_featured(resource, now):
            return self._deny(
                actor, resource,
                DenialReason.ALREADY_FEATURED,
                "listing is already featured",
                metadata={"feature_expiration": resource.feature_expiration.isoformat()},
            )

        duration = timedelta(days=duration_days) if duration_days else self._duration
        expires_at = now + duration
        mutation = Mutation(
            resource_type=resource.resource_type,
            resource_id=resource.resource_id,
            set_fields={"is_featured": True, "feature_expiration": expires_at},
        )
        logger.info(
            f"Feature granted on {resource.label} by '{actor.actor_id}' "
            f"until {expires_at.isoformat()}"
        )
        return FeatureGrant(
            Decision.allow("feature granted", rule="feature_grant"),
            expires_at=expires_at,
            mutation=mutation,
        )

    def revoke(self, actor: ActorContext | None, resource: LoadedResource) -> FeatureGrant:
        """Clear a feature flag and its expiration. Admin only."""
        if actor is None:
            return FeatureGrant(
                Decision.deny(
                    DenialReason.AUTHENTICATION_REQUIRED,
                    "an identified actor is required",
                    rule="feature_revoke",
                )
            )
        if isinstance(resource, NotFound):
            return FeatureGrant(self._guard.authorize(actor, resource, Action.UPDATE))
        if not actor.is_admin:
            return self._deny(
                actor, resource,
                DenialReason.INSUFFICIENT_ACCOUNT_TYPE,
                "only an admin may revoke a feature",
                rule="feature_revoke",
            )

        mutation = Mutation(
            resource_type=resource.resource_type,
            resource_id=resource.resource_id,
            set_fields={"is_featured": False, "feature_expiration": None},
        )
        logger.info(f"Feature revoked on {resource.label} by '{actor.actor_id}'")
        return FeatureGrant(
            Decision.allow("feature revoked", rule="feature_revoke"),
            mutation=mutation,
        )

    @staticmethod
    def _deny(
        actor: ActorContext,
        resource: ResourceDescriptor,
        reason: DenialReason,
        message: str,
        metadata: dict | None = None,
        rule: str = "feature_grant",
    ) -> FeatureGrant:
        logger.debug(
            f"Feature change on {resource.label} denied for '{actor.actor_id}': {reason.value}"
        )
        return FeatureGrant(
            Decision.deny(reason, message, rule=rule, metadata=metadata)
        )
