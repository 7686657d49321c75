"""
Tests for the policy system.

Tests cover:
- Policy base class
- Policy registry
- Built-in policies
"""

from __future__ import annotations

import pytest

from marketgate import ActorContext, ResourceDescriptor, ResourceType
from marketgate.exceptions import PolicyNotFoundError
from marketgate.policies import (
    CommentPolicy,
    DenyAllPolicy,
    OwnedResourcePolicy,
    Policy,
    PolicyRegistry,
    default_registry,
)


class TestPolicyBaseClass:
    """Tests for the Policy base class."""

    def test_policy_initialization(self, provider: ActorContext, draft_listing):
        """Test Policy base class initialization."""
        policy = Policy(provider, draft_listing)
        assert policy.actor == provider
        assert policy.resource == draft_listing

    def test_missing_method_denies(self, provider: ActorContext):
        """Test that actions without a can_<action> method are denied."""
        policy = Policy(provider, None)
        assert policy.can("read") is False
        assert policy.can("delete") is False

    def test_context_passed_to_method(self, provider: ActorContext):
        """Test that the context dict reaches the policy method."""
        class FlagPolicy(Policy):
            def can_update(self, context: dict) -> bool:
                return context.get("flag", False)

        policy = FlagPolicy(provider, None)
        assert policy.authorize("update", {"flag": True}) is True
        assert policy.authorize("update") is False

    def test_get_resource_name_by_convention(self):
        """Test resource name derived from class name."""
        class DirectoryListingPolicy(Policy):
            pass

        assert DirectoryListingPolicy.get_resource_name() == "directory_listing"

    def test_get_available_actions(self):
        """Test listing actions from can_ methods."""
        assert CommentPolicy.get_available_actions() == ["delete", "like"]
        assert "publish" in OwnedResourcePolicy.get_available_actions()


class TestPolicyRegistry:
    """Tests for the PolicyRegistry class."""

    def test_register_and_get(self, policy_registry: PolicyRegistry):
        """Test registering a policy class."""
        policy_registry.register(ResourceType.PRODUCT, OwnedResourcePolicy)
        assert policy_registry.get_policy(ResourceType.PRODUCT) is OwnedResourcePolicy
        assert policy_registry.get_policy("product") is OwnedResourcePolicy

    def test_register_decorator(self, policy_registry: PolicyRegistry):
        """Test registering via decorator."""
        @policy_registry.policy(ResourceType.BLOG_POST)
        class BlogPolicy(Policy):
            pass

        assert policy_registry.get_policy(ResourceType.BLOG_POST) is BlogPolicy

    def test_missing_policy_raises(self, policy_registry: PolicyRegistry):
        """Test that lookups without a default raise."""
        with pytest.raises(PolicyNotFoundError):
            policy_registry.get_policy(ResourceType.COMMENT)

    def test_default_policy_used(self):
        """Test that the default policy covers unregistered types."""
        registry = PolicyRegistry(default_policy=DenyAllPolicy)
        assert registry.get_policy(ResourceType.COMMENT) is DenyAllPolicy

    def test_overwrite_and_unregister(self, policy_registry: PolicyRegistry):
        """Test overwriting and removing a registration."""
        policy_registry.register(ResourceType.PRODUCT, DenyAllPolicy)
        policy_registry.register(ResourceType.PRODUCT, OwnedResourcePolicy)
        assert policy_registry.list_policies() == {"product": "OwnedResourcePolicy"}

        assert policy_registry.unregister(ResourceType.PRODUCT) is True
        assert policy_registry.unregister(ResourceType.PRODUCT) is False
        assert policy_registry.has_policy(ResourceType.PRODUCT) is False

    def test_default_registry_contents(self):
        """Test the standard marketplace registry."""
        registry = default_registry()
        policies = registry.list_policies()
        assert policies["comment"] == "CommentPolicy"
        for name in ("provider_profile", "product", "blog_post", "directory_listing"):
            assert policies[name] == "OwnedResourcePolicy"


class TestBuiltinPolicies:
    """Tests for the built-in policies."""

    def test_deny_all(self, admin: ActorContext, draft_listing):
        """Test DenyAllPolicy denies even admins."""
        policy = DenyAllPolicy(admin, draft_listing)
        assert policy.can("read") is False

    def test_owned_resource_policy(self, provider, stranger, draft_listing):
        """Test OwnedResourcePolicy compares actor and owner."""
        assert OwnedResourcePolicy(provider, draft_listing).can("update") is True
        assert OwnedResourcePolicy(stranger, draft_listing).can("update") is False
        assert OwnedResourcePolicy(provider, None).can("update") is False

    def test_comment_policy_without_parent_owner(self, provider, regular_user):
        """Test CommentPolicy when the parent owner is unknown."""
        orphan = ResourceDescriptor(ResourceType.COMMENT, "c_9", owner_id=regular_user.actor_id)
        assert CommentPolicy(regular_user, orphan).can("delete") is True
        assert CommentPolicy(provider, orphan).can("delete") is False
