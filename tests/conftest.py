"""
Pytest fixtures for Marketgate tests.

Provides common fixtures used across all test modules.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from marketgate import (
    AccountType,
    ActorContext,
    EngineConfig,
    InMemoryClickStore,
    InMemoryDecisionLog,
    InMemoryResourceStore,
    LifecycleEngine,
    LifecycleState,
    ResourceDescriptor,
    ResourceType,
    SubscriptionStatus,
)
from marketgate.gates import AccountGate, OwnershipGuard
from marketgate.policies import PolicyRegistry


FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# Clock Fixtures
# ============================================================================


@pytest.fixture
def now() -> datetime:
    """A fixed point in time for deterministic tests."""
    return FIXED_NOW


@pytest.fixture
def config() -> EngineConfig:
    """Engine config whose clock is frozen at FIXED_NOW."""
    return EngineConfig(clock=lambda: FIXED_NOW)


# ============================================================================
# Actor Fixtures
# ============================================================================


@pytest.fixture
def regular_user() -> ActorContext:
    """A regular account without subscription."""
    return ActorContext(
        actor_id="user_regular",
        account_type=AccountType.REGULAR,
        subscription_status=SubscriptionStatus.NONE,
        session_id="sess_regular",
    )


@pytest.fixture
def provider() -> ActorContext:
    """A provider with an active subscription."""
    return ActorContext(
        actor_id="user_provider",
        account_type=AccountType.PROVIDER,
        subscription_status=SubscriptionStatus.ACTIVE,
    )


@pytest.fixture
def seller() -> ActorContext:
    """A product seller with an active subscription."""
    return ActorContext(
        actor_id="user_seller",
        account_type=AccountType.PRODUCT_SELLER,
        subscription_status=SubscriptionStatus.ACTIVE,
    )


@pytest.fixture
def admin() -> ActorContext:
    """An admin account."""
    return ActorContext(
        actor_id="user_admin",
        account_type=AccountType.ADMIN,
        subscription_status=SubscriptionStatus.NONE,
    )


@pytest.fixture
def stranger() -> ActorContext:
    """A provider unrelated to any fixture resource."""
    return ActorContext(
        actor_id="user_stranger",
        account_type=AccountType.PROVIDER,
        subscription_status=SubscriptionStatus.ACTIVE,
    )


# ============================================================================
# Resource Fixtures
# ============================================================================


@pytest.fixture
def draft_listing(provider: ActorContext, now: datetime) -> ResourceDescriptor:
    """A draft directory listing owned by the provider."""
    return ResourceDescriptor(
        resource_type=ResourceType.DIRECTORY_LISTING,
        resource_id="svc_1",
        owner_id=provider.actor_id,
        created_at=now - timedelta(days=3),
    )


@pytest.fixture
def published_listing(provider: ActorContext, now: datetime) -> ResourceDescriptor:
    """A published directory listing owned by the provider."""
    return ResourceDescriptor(
        resource_type=ResourceType.DIRECTORY_LISTING,
        resource_id="svc_2",
        owner_id=provider.actor_id,
        state=LifecycleState.PUBLISHED,
        published_at=now - timedelta(days=2),
        created_at=now - timedelta(days=3),
    )


@pytest.fixture
def product(seller: ActorContext, now: datetime) -> ResourceDescriptor:
    """A published product owned by the seller."""
    return ResourceDescriptor(
        resource_type=ResourceType.PRODUCT,
        resource_id="prod_1",
        owner_id=seller.actor_id,
        state=LifecycleState.PUBLISHED,
        published_at=now - timedelta(days=10),
    )


@pytest.fixture
def blog_post(provider: ActorContext) -> ResourceDescriptor:
    """A published blog post owned by the provider."""
    return ResourceDescriptor(
        resource_type=ResourceType.BLOG_POST,
        resource_id="blog_1",
        owner_id=provider.actor_id,
        state=LifecycleState.PUBLISHED,
    )


@pytest.fixture
def comment(regular_user: ActorContext, blog_post: ResourceDescriptor) -> ResourceDescriptor:
    """A comment by the regular user on the provider's blog post."""
    return ResourceDescriptor(
        resource_type=ResourceType.COMMENT,
        resource_id="cmt_1",
        owner_id=regular_user.actor_id,
        parent_id=blog_post.resource_id,
        parent_owner_id=blog_post.owner_id,
    )


# ============================================================================
# Component Fixtures
# ============================================================================


@pytest.fixture
def policy_registry() -> PolicyRegistry:
    """Create a fresh, empty policy registry."""
    return PolicyRegistry()


@pytest.fixture
def gate() -> AccountGate:
    return AccountGate()


@pytest.fixture
def guard() -> OwnershipGuard:
    return OwnershipGuard()


@pytest.fixture
def resource_store(
    draft_listing: ResourceDescriptor,
    published_listing: ResourceDescriptor,
    blog_post: ResourceDescriptor,
    comment: ResourceDescriptor,
) -> InMemoryResourceStore:
    """A store pre-populated with the fixture resources."""
    store = InMemoryResourceStore()
    for resource in (draft_listing, published_listing, blog_post, comment):
        store.put(resource)
    return store


@pytest.fixture
def click_store() -> InMemoryClickStore:
    return InMemoryClickStore()


@pytest.fixture
def decision_log() -> InMemoryDecisionLog:
    return InMemoryDecisionLog()


@pytest.fixture
def engine(
    config: EngineConfig,
    resource_store: InMemoryResourceStore,
    click_store: InMemoryClickStore,
    decision_log: InMemoryDecisionLog,
) -> LifecycleEngine:
    """A fully wired engine with in-memory collaborators."""
    return LifecycleEngine(
        config=config,
        store=resource_store,
        click_store=click_store,
        decision_log=decision_log,
    )
