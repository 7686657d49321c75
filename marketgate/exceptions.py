"""
Custom exceptions for Marketgate.

Authorization refusals are ordinary return values (see
:class:`marketgate.types.Decision`). The exceptions here cover the cases
where a caller explicitly asks for a denial to be raised, where
configuration is invalid, or where the storage collaborator cannot apply
a mutation.
"""

from __future__ import annotations

from typing import Any


class MarketgateError(Exception):
    """
    Base exception for all Marketgate errors.

    Attributes:
        message: Human-readable error description.
        details: Additional context about the error.

    Example:
        >>> try:
        ...     engine.check_or_raise(actor, resource, Action.UPDATE)
        ... except MarketgateError as e:
        ...     logger.error(f"Marketgate error: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class AuthorizationError(MarketgateError):
    """
    Raised when a denied decision is turned into an exception.

    Only raised on request, through ``Decision.raise_if_denied`` or
    ``LifecycleEngine.check_or_raise``.

    Attributes:
        actor: The actor ID that attempted the action (None if anonymous).
        action: The action or capability that was attempted.
        resource: The resource the action was attempted on.
        reason: Machine-readable denial reason code.

    Example:
        >>> raise AuthorizationError(
        ...     actor="user_1",
        ...     action="update",
        ...     resource="product:p_42",
        ...     reason="not_owner",
        ... )
    """

    def __init__(
        self,
        actor: str | None,
        action: str,
        resource: str,
        reason: str | None = None,
        message: str | None = None,
    ) -> None:
        self.actor = actor
        self.action = action
        self.resource = resource
        self.reason = reason or "denied"

        text = (
            f"Authorization denied: actor '{actor or 'anonymous'}' cannot perform "
            f"'{action}' on '{resource}'. Reason: {self.reason}"
        )
        if message:
            text += f" ({message})"

        details = {
            "actor": actor,
            "action": action,
            "resource": resource,
            "reason": self.reason,
        }
        super().__init__(text, details)


class ConfigurationError(MarketgateError):
    """
    Raised when engine configuration is invalid.

    Attributes:
        config_key: The configuration key that is invalid.
        expected: Description of the expected value.
        received: The value that was provided.
    """

    def __init__(
        self,
        config_key: str,
        expected: str | None = None,
        received: Any = None,
    ) -> None:
        self.config_key = config_key
        self.expected = expected
        self.received = received

        message = f"Invalid configuration for '{config_key}'"
        if expected:
            message += f": expected {expected}"
        if received is not None:
            message += f", got {received!r}"

        details = {
            "config_key": config_key,
            "expected": expected,
            "received": repr(received) if received is not None else None,
        }
        super().__init__(message, details)


class ResourceNotFoundError(MarketgateError):
    """Raised by a store when a mutation targets a resource that does not exist."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            f"Resource '{resource_type}:{resource_id}' not found",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class ConflictError(MarketgateError):
    """
    Raised by a store when a compare-and-set precondition no longer holds.

    This means another request changed the resource between the load and the
    write. The caller should reload the resource and ask for a new decision.

    Attributes:
        resource: ``type:id`` of the resource.
        field_name: The field whose expected value did not match.
        expected: The value the mutation expected.
        actual: The value found in storage.
    """

    def __init__(
        self,
        resource: str,
        field_name: str,
        expected: Any,
        actual: Any,
    ) -> None:
        self.resource = resource
        self.field_name = field_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Conflicting update on '{resource}': field '{field_name}' "
            f"expected {expected!r}, found {actual!r}",
            {
                "resource": resource,
                "field_name": field_name,
                "expected": repr(expected),
                "actual": repr(actual),
            },
        )


class PolicyNotFoundError(MarketgateError):
    """
    Raised when no policy is registered for a resource type.

    Attributes:
        resource_name: The resource type that had no policy.
        available_policies: List of registered resource types.
    """

    def __init__(
        self,
        resource_name: str,
        available_policies: list[str] | None = None,
    ) -> None:
        self.resource_name = resource_name
        self.available_policies = available_policies or []

        message = f"No policy registered for resource type '{resource_name}'"
        if self.available_policies:
            message += f". Available: {', '.join(sorted(self.available_policies))}"

        details = {
            "resource_name": resource_name,
            "available_policies": self.available_policies,
        }
        super().__init__(message, details)


class ClaimsError(MarketgateError):
    """
    Raised when identity claims from the auth collaborator cannot be normalized.

    Attributes:
        errors: Individual validation error messages.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__(
            f"Invalid actor claims: {'; '.join(errors)}",
            {"errors": errors},
        )
