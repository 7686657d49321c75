"""
Tests for identity claims normalization.
"""

from __future__ import annotations

import pytest

from marketgate import (
    AccountType,
    ActorClaims,
    ClaimsError,
    SubscriptionStatus,
    actor_from_claims,
)


class TestActorFromClaims:
    """Tests for actor_from_claims."""

    def test_anonymous(self):
        """Test that missing claims mean an anonymous caller."""
        assert actor_from_claims(None) is None
        assert actor_from_claims({}) is None

    def test_camel_case_claims(self):
        actor = actor_from_claims(
            {
                "id": "u_17",
                "accountType": "product_seller",
                "subscriptionStatus": "active",
                "sessionId": "s_1",
                "email": "seller@example.com",
            }
        )
        assert actor.actor_id == "u_17"
        assert actor.account_type is AccountType.PRODUCT_SELLER
        assert actor.subscription_status is SubscriptionStatus.ACTIVE
        assert actor.session_id == "s_1"

    def test_admin_role_overrides_account_type(self):
        actor = actor_from_claims({"id": "u_1", "role": "admin", "accountType": "user"})
        assert actor.is_admin is True

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("user", AccountType.REGULAR),
            ("Seller", AccountType.PRODUCT_SELLER),
            ("provider", AccountType.PROVIDER),
            (None, AccountType.REGULAR),
        ],
    )
    def test_account_type_aliases(self, raw, expected):
        assert actor_from_claims({"id": "u_1", "accountType": raw}).account_type is expected

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("trialing", SubscriptionStatus.TRIAL),
            ("unpaid", SubscriptionStatus.PAST_DUE),
            ("cancelled", SubscriptionStatus.CANCELED),
            ("", SubscriptionStatus.NONE),
            ("ACTIVE", SubscriptionStatus.ACTIVE),
        ],
    )
    def test_subscription_aliases(self, raw, expected):
        actor = actor_from_claims({"id": "u_1", "subscriptionStatus": raw})
        assert actor.subscription_status is expected

    def test_numeric_id_stringified(self):
        assert actor_from_claims({"_id": 42}).actor_id == "42"

    def test_missing_id_rejected(self):
        with pytest.raises(ClaimsError) as exc_info:
            actor_from_claims({"accountType": "provider"})
        assert exc_info.value.errors

    def test_unknown_account_type_rejected(self):
        with pytest.raises(ClaimsError):
            actor_from_claims({"id": "u_1", "accountType": "superuser"})


class TestActorClaimsModel:
    """Tests for the ActorClaims model."""

    def test_populate_by_field_name(self):
        claims = ActorClaims(actor_id="u_1", account_type=AccountType.PROVIDER)
        assert claims.to_actor().account_type is AccountType.PROVIDER

    def test_frozen(self):
        from pydantic import ValidationError

        claims = ActorClaims(actor_id="u_1")
        with pytest.raises(ValidationError):
            claims.actor_id = "u_2"
