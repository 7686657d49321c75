"""
Normalization of identity claims into an ActorContext.

The authentication collaborator hands over whatever its session carries:
camelCase keys, a separate ``role`` next to ``accountType``, legacy
subscription values. This module validates those claims with Pydantic and
produces the ActorContext the engine works on.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from marketgate.exceptions import ClaimsError
from marketgate.types import AccountType, ActorContext, SubscriptionStatus

logger = logging.getLogger(__name__)

_ACCOUNT_ALIASES = {
    "user": AccountType.REGULAR,
    "seller": AccountType.PRODUCT_SELLER,
}

_SUBSCRIPTION_ALIASES = {
    "": SubscriptionStatus.NONE,
    "inactive": SubscriptionStatus.NONE,
    "trialing": SubscriptionStatus.TRIAL,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "cancelled": SubscriptionStatus.CANCELED,
}


class ActorClaims(BaseModel):
    """
    Validated identity claims.

    Example:
        >>> claims = ActorClaims.model_validate(
        ...     {"id": "u_17", "accountType": "provider", "subscriptionStatus": "active"}
        ... )
        >>> claims.to_actor().account_type
        <AccountType.PROVIDER: 'provider'>
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    actor_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("actor_id", "id", "_id", "userId"),
    )
    account_type: AccountType = Field(
        default=AccountType.REGULAR,
        validation_alias=AliasChoices("account_type", "accountType"),
    )
    subscription_status: SubscriptionStatus = Field(
        default=SubscriptionStatus.NONE,
        validation_alias=AliasChoices("subscription_status", "subscriptionStatus"),
    )
    session_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("session_id", "sessionId"),
    )

    @model_validator(mode="before")
    @classmethod
    def _admin_role_wins(cls, data: Any) -> Any:
        # Sessions carry `role: admin` separately from the account type.
        if isinstance(data, Mapping) and str(data.get("role", "")).lower() == "admin":
            data = dict(data)
            data["account_type"] = AccountType.ADMIN
            data.pop("accountType", None)
        return data

    @field_validator("actor_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if value is None:
            return value
        return str(value)

    @field_validator("account_type", mode="before")
    @classmethod
    def _normalize_account_type(cls, value: Any) -> Any:
        if value is None:
            return AccountType.REGULAR
        if isinstance(value, str):
            value = value.strip().lower()
            return _ACCOUNT_ALIASES.get(value, value)
        return value

    @field_validator("subscription_status", mode="before")
    @classmethod
    def _normalize_subscription(cls, value: Any) -> Any:
        if value is None:
            return SubscriptionStatus.NONE
        if isinstance(value, str):
            value = value.strip().lower()
            return _SUBSCRIPTION_ALIASES.get(value, value)
        return value

    def to_actor(self) -> ActorContext:
        return ActorContext(
            actor_id=self.actor_id,
            account_type=self.account_type,
            subscription_status=self.subscription_status,
            session_id=self.session_id,
        )


def actor_from_claims(claims: Mapping[str, Any] | None) -> ActorContext | None:
    """
    Build an ActorContext from raw claims.

    Returns None for an anonymous caller (no claims at all).

    Raises:
        ClaimsError: If the claims are present but invalid.
    """
    if not claims:
        return None
    try:
        return ActorClaims.model_validate(dict(claims)).to_actor()
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc']) or 'claims'}: {err['msg']}"
            for err in e.errors()
        ]
        logger.warning(f"Rejected actor claims: {errors}")
        raise ClaimsError(errors) from e
