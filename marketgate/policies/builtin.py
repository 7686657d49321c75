"""
Built-in policies for Marketgate.

These encode the instance-level ownership rules for every resource type of
the marketplace. Admin override is applied by OwnershipGuard before a
policy is consulted, so none of these classes special-case admins.
"""

from __future__ import annotations

import logging
from typing import Any

from marketgate.policies.base import Policy
from marketgate.policies.registry import PolicyRegistry
from marketgate.types import ResourceDescriptor, ResourceType

logger = logging.getLogger(__name__)


class DenyAllPolicy(Policy[Any]):
    """
    Policy that denies all actions.

    Used as the registry default so an unregistered resource type is never
    authorized by accident.
    """

    def authorize(self, action: Any, context: dict[str, Any] | None = None) -> bool:
        logger.debug(
            f"DenyAllPolicy: Denying action '{action}' for actor '{self.actor.actor_id}'"
        )
        return False


class OwnedResourcePolicy(Policy[ResourceDescriptor]):
    """
    Direct ownership: only the creator of the resource may act on it.

    Applies to provider profiles, products, blog posts and directory
    listings.
    """

    def _is_owner(self) -> bool:
        return self.resource is not None and self.actor.actor_id == self.resource.owner_id

    def can_read(self, context: dict[str, Any]) -> bool:
        return self._is_owner()

    def can_update(self, context: dict[str, Any]) -> bool:
        return self._is_owner()

    def can_delete(self, context: dict[str, Any]) -> bool:
        return self._is_owner()

    def can_publish(self, context: dict[str, Any]) -> bool:
        return self._is_owner()

    def can_unpublish(self, context: dict[str, Any]) -> bool:
        return self._is_owner()


class CommentPolicy(Policy[ResourceDescriptor]):
    """
    Moderation rules for comments.

    A comment may be deleted by its author or by the owner of the blog post
    or listing it hangs off of. A comment whose parent could not be loaded
    has no parent owner, so only its author matches. Any identified actor
    may like a comment.
    """

    def can_delete(self, context: dict[str, Any]) -> bool:
        if self.resource is None:
            return False
        actor_id = self.actor.actor_id
        if actor_id == self.resource.owner_id:
            return True
        parent_owner = self.resource.parent_owner_id
        return parent_owner is not None and actor_id == parent_owner

    def can_like(self, context: dict[str, Any]) -> bool:
        return self.resource is not None


OWNED_RESOURCE_TYPES = (
    ResourceType.PROVIDER_PROFILE,
    ResourceType.PRODUCT,
    ResourceType.BLOG_POST,
    ResourceType.DIRECTORY_LISTING,
)


def default_registry() -> PolicyRegistry:
    """Build a registry holding the marketplace's standard policies."""
    registry = PolicyRegistry(default_policy=DenyAllPolicy)
    for resource_type in OWNED_RESOURCE_TYPES:
        registry.register(resource_type, OwnedResourcePolicy)
    registry.register(ResourceType.COMMENT, CommentPolicy)
    return registry
