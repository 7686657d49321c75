"""
Policy base class for Marketgate.

Instance-level rules are written in a Pundit-inspired style: one policy
class per resource type, with ``can_<action>`` methods answering whether
the actor may perform that action on the resource. A missing method
means the action is denied.
"""

from __future__ import annotations

import re
from abc import ABC
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from marketgate.types import Action

if TYPE_CHECKING:
    from marketgate.types import ActorContext

# Type variable for the resource being authorized
T = TypeVar("T")


class Policy(ABC, Generic[T]):
    """
    Abstract base class for all Marketgate policies.

    Attributes:
        actor: The identified actor the decision is made for.
        resource: The resource snapshot being accessed.

    Example:
        >>> class ReviewPolicy(Policy):
        ...     def can_update(self, context: dict) -> bool:
        ...         return self.resource.owner_id == self.actor.actor_id
    """

    # Overrides the name derived from the class name
    _resource_name: str | None = None

    def __init__(self, actor: ActorContext, resource: T | None = None) -> None:
        self.actor = actor
        self.resource = resource

    def authorize(self, action: Action | str, context: dict[str, Any] | None = None) -> bool:
        """
        Check if the actor is authorized to perform an action.

        Looks up the corresponding ``can_<action>`` method and calls it with
        the provided context. Unknown actions are denied.

        Args:
            action: The action to check.
            context: Additional context for the decision.

        Returns:
            True if authorized, False otherwise.
        """
        name = action.value if isinstance(action, Action) else str(action)
        method = getattr(self, f"can_{name}", None)

        if method is None:
            return False

        return bool(method(context or {}))

    def can(self, action: Action | str, context: dict[str, Any] | None = None) -> bool:
        """Alias for authorize()."""
        return self.authorize(action, context)

    @classmethod
    def get_resource_name(cls) -> str:
        """
        Get the resource name this policy handles.

        Falls back to deriving it from the class name, following the
        convention ``BlogPostPolicy`` -> ``blog_post``.
        """
        if cls._resource_name:
            return cls._resource_name

        name = cls.__name__
        if name.endswith("Policy"):
            name = name[:-6]
        return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()

    @classmethod
    def get_available_actions(cls) -> list[str]:
        """List the actions defined by ``can_<action>`` methods."""
        actions = []
        for name in dir(cls):
            if name.startswith("can_") and callable(getattr(cls, name)):
                actions.append(name[4:])
        return sorted(actions)
