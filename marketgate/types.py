"""
Core type definitions for Marketgate.

This module defines the data carriers the engine works on: the acting
identity, the snapshot of the resource being acted on, and the decision
returned for every authorization question.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from marketgate.exceptions import AuthorizationError


def _utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class AccountType(str, Enum):
    """Account types a marketplace user can hold."""
    REGULAR = "regular"
    PROVIDER = "provider"
    PRODUCT_SELLER = "product_seller"
    ADMIN = "admin"


class SubscriptionStatus(str, Enum):
    """Subscription states as reported by the subscription collaborator."""
    NONE = "none"
    TRIAL = "trial"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class ResourceType(str, Enum):
    """Owned resource kinds subject to lifecycle and ownership rules."""
    PROVIDER_PROFILE = "provider_profile"
    PRODUCT = "product"
    BLOG_POST = "blog_post"
    DIRECTORY_LISTING = "directory_listing"
    COMMENT = "comment"


class LifecycleState(str, Enum):
    """Publication states for listing-like resources."""
    DRAFT = "draft"
    PUBLISHED = "published"
    SUSPENDED = "suspended"


class Capability(str, Enum):
    """Permissions gated by account type and subscription."""
    CREATE = "create"
    PUBLISH = "publish"
    LIKE = "like"
    VIEW_DRAFT = "view_draft"


class Action(str, Enum):
    """Instance-level actions checked against a specific resource."""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"
    LIKE = "like"


class DenialReason(str, Enum):
    """Machine-readable reason codes carried by denied decisions."""
    INSUFFICIENT_ACCOUNT_TYPE = "insufficient_account_type"
    SUBSCRIPTION_REQUIRED = "subscription_required"
    NOT_OWNER = "not_owner"
    INVALID_TRANSITION = "invalid_transition"
    AUTHENTICATION_REQUIRED = "authentication_required"
    ALREADY_FEATURED = "already_featured"
    NOT_PUBLISHED = "not_published"
    PARENT_UNAVAILABLE = "parent_unavailable"


@dataclass(frozen=True)
class ActorContext:
    """
    Normalized view of the authenticated identity performing an operation.

    Supplied by the authentication collaborator and never persisted by the
    engine. Anonymous callers are represented by ``None`` rather than an
    ActorContext.

    Attributes:
        actor_id: Opaque identifier of the account.
        account_type: The account type held by the actor.
        subscription_status: Current subscription state.
        session_id: Optional session identifier (used for click tracking).

    Example:
        >>> seller = ActorContext(
        ...     actor_id="u_17",
        ...     account_type=AccountType.PRODUCT_SELLER,
        ...     subscription_status=SubscriptionStatus.ACTIVE,
        ... )
    """
    actor_id: str
    account_type: AccountType = AccountType.REGULAR
    subscription_status: SubscriptionStatus = SubscriptionStatus.NONE
    session_id: str | None = None

    def __post_init__(self) -> None:
        if not self.actor_id:
            raise ValueError("actor_id must be a non-empty identifier")
        object.__setattr__(self, "account_type", AccountType(self.account_type))
        object.__setattr__(
            self, "subscription_status", SubscriptionStatus(self.subscription_status)
        )

    @property
    def is_admin(self) -> bool:
        """Check if the actor holds the admin account type."""
        return self.account_type is AccountType.ADMIN

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "actor_id": self.actor_id,
            "account_type": self.account_type.value,
            "subscription_status": self.subscription_status.value,
            "session_id": self.session_id,
        }


@dataclass(frozen=True)
class NotFound:
    """
    Outcome returned by the loading collaborator when a resource is missing.

    The engine treats it as a failed ownership check rather than a fault.
    """
    resource_type: ResourceType
    resource_id: str

    @property
    def label(self) -> str:
        return f"{ResourceType(self.resource_type).value}:{self.resource_id}"


@dataclass(frozen=True)
class ResourceDescriptor:
    """
    Snapshot of a resource loaded immediately before a decision.

    Snapshots are never cached across requests. For comments ``owner_id`` is
    the commenting user and ``parent_owner_id`` the owner of the blog post or
    listing the comment is attached to (None when that parent is missing).

    Attributes:
        resource_type: Kind of resource.
        resource_id: Identifier of the resource.
        owner_id: Account that created the resource. Never changes.
        parent_owner_id: For comments, owner of the parent resource.
        parent_id: For comments, identifier of the parent resource.
        state: Lifecycle state. Defaults to draft; always None for comments.
        published_at: First-publish timestamp, write-once.
        suspended_at: When the resource was last suspended by an admin.
        updated_at: Timestamp of the last lifecycle transition.
        is_featured: Stored feature flag (see FeatureExpiryEvaluator).
        feature_expiration: When the feature flag lapses.
        liked_by: Actor IDs that liked a comment.
        created_at: Creation timestamp.

    Example:
        >>> listing = ResourceDescriptor(
        ...     resource_type=ResourceType.DIRECTORY_LISTING,
        ...     resource_id="svc_1",
        ...     owner_id="u_17",
        ... )
        >>> listing.state
        <LifecycleState.DRAFT: 'draft'>
    """
    resource_type: ResourceType
    resource_id: str
    owner_id: str
    parent_owner_id: str | None = None
    parent_id: str | None = None
    state: LifecycleState | None = None
    published_at: datetime | None = None
    suspended_at: datetime | None = None
    updated_at: datetime | None = None
    is_featured: bool = False
    feature_expiration: datetime | None = None
    liked_by: frozenset[str] = field(default_factory=frozenset)
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        resource_type = ResourceType(self.resource_type)
        object.__setattr__(self, "resource_type", resource_type)
        object.__setattr__(self, "liked_by", frozenset(self.liked_by))

        if resource_type is ResourceType.COMMENT:
            if self.state is not None:
                raise ValueError("comments do not carry a lifecycle state")
        elif self.state is None:
            object.__setattr__(self, "state", LifecycleState.DRAFT)
        else:
            object.__setattr__(self, "state", LifecycleState(self.state))

    @property
    def is_comment(self) -> bool:
        return self.resource_type is ResourceType.COMMENT

    @property
    def like_count(self) -> int:
        """Number of likes, always derived from the liked_by set."""
        return len(self.liked_by)

    @property
    def label(self) -> str:
        """Short ``type:id`` label for logs and errors."""
        return f"{self.resource_type.value}:{self.resource_id}"

    def attach_parent(self, parent: ResourceDescriptor | NotFound) -> ResourceDescriptor:
        """
        Return a copy of this comment linked to its loaded parent.

        When the parent loader returned NotFound the parent fields are cleared,
        which makes every nested-ownership check on the copy fail.
        """
        if isinstance(parent, NotFound):
            return replace(self, parent_id=None, parent_owner_id=None)
        return replace(self, parent_id=parent.resource_id, parent_owner_id=parent.owner_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "resource_type": self.resource_type.value,
            "resource_id": self.resource_id,
            "owner_id": self.owner_id,
            "parent_owner_id": self.parent_owner_id,
            "parent_id": self.parent_id,
            "state": self.state.value if self.state else None,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "suspended_at": self.suspended_at.isoformat() if self.suspended_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "is_featured": self.is_featured,
            "feature_expiration": (
                self.feature_expiration.isoformat() if self.feature_expiration else None
            ),
            "liked_by": sorted(self.liked_by),
            "like_count": self.like_count,
            "created_at": self.created_at.isoformat(),
        }


# What a loading collaborator hands back for a resource id.
LoadedResource = Union[ResourceDescriptor, NotFound]


@dataclass(frozen=True)
class Decision:
    """
    Result of an authorization question.

    Denials always carry a reason code so the caller can render a specific
    message. Decisions are values, never exceptions; use
    :meth:`raise_if_denied` when an exception is wanted.

    Attributes:
        allowed: Whether the operation is authorized.
        reason: Denial reason code (None when allowed).
        message: Human-readable explanation.
        rule: Name of the rule or table row that decided.
        metadata: Additional information about the decision.

    Example:
        >>> decision = Decision.deny(DenialReason.NOT_OWNER, "actor does not own resource")
        >>> decision.denied
        True
    """
    allowed: bool
    reason: DenialReason | None = None
    message: str | None = None
    rule: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def allow(cls, message: str | None = None,
              rule: str | None = None,
              metadata: dict[str, Any] | None = None) -> Decision:
        """Create an allowed decision."""
        return cls(allowed=True, message=message, rule=rule, metadata=metadata or {})

    @classmethod
    def deny(cls, reason: DenialReason,
             message: str | None = None,
             rule: str | None = None,
             metadata: dict[str, Any] | None = None) -> Decision:
        """Create a denied decision."""
        return cls(
            allowed=False,
            reason=DenialReason(reason),
            message=message,
            rule=rule,
            metadata=metadata or {},
        )

    @property
    def denied(self) -> bool:
        return not self.allowed

    def raise_if_denied(self, actor: ActorContext | None, action: str, resource: str) -> None:
        """
        Raise AuthorizationError if this decision is a denial.

        Args:
            actor: The actor the decision was made for.
            action: Action or capability name, for the error message.
            resource: Resource label, for the error message.

        Raises:
            AuthorizationError: If the decision is denied.
        """
        if self.allowed:
            return
        raise AuthorizationError(
            actor=actor.actor_id if actor else None,
            action=action,
            resource=resource,
            reason=self.reason.value if self.reason else None,
            message=self.message,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "allowed": self.allowed,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
            "rule": self.rule,
            "metadata": self.metadata,
        }
