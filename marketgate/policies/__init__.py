"""
Policy classes for instance-level authorization.
"""

from marketgate.policies.base import Policy
from marketgate.policies.builtin import (
    OWNED_RESOURCE_TYPES,
    CommentPolicy,
    DenyAllPolicy,
    OwnedResourcePolicy,
    default_registry,
)
from marketgate.policies.registry import PolicyRegistry

__all__ = [
    "Policy",
    "PolicyRegistry",
    "DenyAllPolicy",
    "OwnedResourcePolicy",
    "CommentPolicy",
    "OWNED_RESOURCE_TYPES",
    "default_registry",
]
