"""
Marketgate: access-controlled content lifecycle engine for marketplaces.

Marketgate answers the policy questions every resource-mutating request in
a multi-tenant marketplace has to ask before touching storage: may this
account create this kind of resource, does this actor own this resource,
which lifecycle transition is being requested and what does it write, and
who may delete or like a comment.

Basic Usage:
    >>> from marketgate import (
    ...     Action, ActorContext, AccountType, LifecycleEngine,
    ...     ResourceDescriptor, ResourceType, SubscriptionStatus,
    ... )
    >>>
    >>> engine = LifecycleEngine()
    >>> seller = ActorContext(
    ...     actor_id="u_17",
    ...     account_type=AccountType.PRODUCT_SELLER,
    ...     subscription_status=SubscriptionStatus.ACTIVE,
    ... )
    >>> product = ResourceDescriptor(ResourceType.PRODUCT, "p_1", owner_id="u_17")
    >>> engine.authorize(seller, product, Action.UPDATE).allowed
    True
"""

__version__ = "0.1.0"

from marketgate.audit import DecisionRecord, InMemoryDecisionLog
from marketgate.claims import ActorClaims, actor_from_claims
from marketgate.config import EngineConfig
from marketgate.engine import LifecycleEngine
from marketgate.exceptions import (
    AuthorizationError,
    ClaimsError,
    ConfigurationError,
    ConflictError,
    MarketgateError,
    PolicyNotFoundError,
    ResourceNotFoundError,
)
from marketgate.featuring import FeatureExpiryEvaluator, FeatureGrant
from marketgate.gates import AccountGate, OwnershipGuard
from marketgate.lifecycle import ResourceStateMachine, TransitionResult
from marketgate.moderation import LikeResult, ModerationEngine
from marketgate.storage import (
    ClickStore,
    InMemoryClickStore,
    InMemoryResourceStore,
    Mutation,
    ResourceStore,
)
from marketgate.tracking import ClickOutcome, ClickTracker
from marketgate.types import (
    AccountType,
    Action,
    ActorContext,
    Capability,
    Decision,
    DenialReason,
    LifecycleState,
    NotFound,
    ResourceDescriptor,
    ResourceType,
    SubscriptionStatus,
)

__all__ = [
    # Version
    "__version__",
    # Main class
    "LifecycleEngine",
    "EngineConfig",
    # Components
    "AccountGate",
    "OwnershipGuard",
    "ResourceStateMachine",
    "TransitionResult",
    "ModerationEngine",
    "LikeResult",
    "FeatureExpiryEvaluator",
    "FeatureGrant",
    "ClickTracker",
    "ClickOutcome",
    # Core types
    "AccountType",
    "SubscriptionStatus",
    "ResourceType",
    "LifecycleState",
    "Capability",
    "Action",
    "DenialReason",
    "ActorContext",
    "ResourceDescriptor",
    "NotFound",
    "Decision",
    # Claims
    "ActorClaims",
    "actor_from_claims",
    # Storage
    "Mutation",
    "ResourceStore",
    "ClickStore",
    "InMemoryResourceStore",
    "InMemoryClickStore",
    # Audit
    "DecisionRecord",
    "InMemoryDecisionLog",
    # Exceptions
    "MarketgateError",
    "AuthorizationError",
    "ConfigurationError",
    "ConflictError",
    "ResourceNotFoundError",
    "PolicyNotFoundError",
    "ClaimsError",
]
