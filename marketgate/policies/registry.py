"""
Policy registry for Marketgate.

Maps resource types to the policy class that answers instance-level
questions about them.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from marketgate.exceptions import PolicyNotFoundError
from marketgate.types import ResourceType

if TYPE_CHECKING:
    from marketgate.policies.base import Policy
    from marketgate.types import ActorContext

logger = logging.getLogger(__name__)


def _key(resource_type: ResourceType | str) -> str:
    if isinstance(resource_type, ResourceType):
        return resource_type.value
    return str(resource_type)


class PolicyRegistry:
    """
    Registry for policy classes keyed by resource type.

    Example:
        >>> registry = PolicyRegistry(default_policy=DenyAllPolicy)
        >>>
        >>> @registry.policy(ResourceType.PRODUCT)
        ... class ProductPolicy(OwnedResourcePolicy):
        ...     pass
        >>>
        >>> policy = registry.get_policy_instance(ResourceType.PRODUCT, actor, product)
        >>> policy.can("update")

    Thread Safety:
        All operations are thread-safe via internal locking.
    """

    def __init__(self, default_policy: type[Policy] | None = None) -> None:
        """
        Initialize the registry.

        Args:
            default_policy: Policy class used for resource types with no
                registration. If None, such lookups raise PolicyNotFoundError.
        """
        self._policies: dict[str, type[Policy]] = {}
        self._default_policy = default_policy
        self._lock = threading.RLock()

    def policy(self, resource_type: ResourceType | str) -> Any:
        """Decorator for registering a policy class."""
        def decorator(policy_class: type[Policy]) -> type[Policy]:
            self.register(resource_type, policy_class)
            return policy_class
        return decorator

    def register(self, resource_type: ResourceType | str, policy_class: type[Policy]) -> None:
        """Register a policy class for a resource type, replacing any existing one."""
        name = _key(resource_type)
        with self._lock:
            if name in self._policies:
                existing = self._policies[name].__name__
                logger.warning(
                    f"Overwriting policy for '{name}': "
                    f"{existing} -> {policy_class.__name__}"
                )
            self._policies[name] = policy_class
            logger.debug(f"Registered policy '{policy_class.__name__}' for '{name}'")

    def get_policy(self, resource_type: ResourceType | str) -> type[Policy]:
        """
        Get the policy class for a resource type.

        Raises:
            PolicyNotFoundError: If no policy is registered and no default is set.
        """
        name = _key(resource_type)
        with self._lock:
            if name in self._policies:
                return self._policies[name]

            if self._default_policy is not None:
                logger.debug(
                    f"No policy for '{name}', using default: "
                    f"{self._default_policy.__name__}"
                )
                return self._default_policy

            raise PolicyNotFoundError(name, list(self._policies))

    def get_policy_instance(
        self,
        resource_type: ResourceType | str,
        actor: ActorContext,
        resource: Any = None,
    ) -> Policy:
        """Look up the policy class and instantiate it for an actor and resource."""
        policy_class = self.get_policy(resource_type)
        return policy_class(actor, resource)

    def has_policy(self, resource_type: ResourceType | str) -> bool:
        with self._lock:
            return _key(resource_type) in self._policies

    def list_policies(self) -> dict[str, str]:
        """Map registered resource types to policy class names."""
        with self._lock:
            return {name: policy.__name__ for name, policy in self._policies.items()}

    def unregister(self, resource_type: ResourceType | str) -> bool:
        """Unregister a policy. Returns True if one was registered."""
        name = _key(resource_type)
        with self._lock:
            if name in self._policies:
                del self._policies[name]
                logger.debug(f"Unregistered policy for '{name}'")
                return True
            return False
