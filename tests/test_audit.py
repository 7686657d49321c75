"""
Tests for the in-memory decision log.
"""

from __future__ import annotations

import json

from marketgate import Decision, DenialReason, InMemoryDecisionLog


class TestInMemoryDecisionLog:
    """Tests for InMemoryDecisionLog."""

    def test_record(self, decision_log, provider):
        entry = decision_log.record(
            "authorize", provider, "product:p_1", "update",
            Decision.deny(DenialReason.NOT_OWNER, rule="default_deny"),
        )
        assert entry.actor_id == "user_provider"
        assert entry.allowed is False
        assert entry.reason == "not_owner"
        assert entry.rule == "default_deny"
        assert decision_log.records == [entry]

    def test_anonymous_actor(self, decision_log):
        entry = decision_log.record(
            "can_perform", None, "comment", "like",
            Decision.deny(DenialReason.AUTHENTICATION_REQUIRED),
        )
        assert entry.actor_id is None

    def test_max_records(self, provider):
        """Test that the oldest records are dropped past the limit."""
        log = InMemoryDecisionLog(max_records=3)
        for i in range(5):
            log.record("authorize", provider, f"product:p_{i}", "read", Decision.allow())
        assert len(log) == 3
        assert [r.subject for r in log.records] == ["product:p_2", "product:p_3", "product:p_4"]

    def test_clear(self, decision_log, provider):
        decision_log.record("authorize", provider, "product:p_1", "read", Decision.allow())
        decision_log.clear()
        assert len(decision_log) == 0

    def test_to_json(self, decision_log, provider):
        entry = decision_log.record("authorize", provider, "product:p_1", "read", Decision.allow())
        data = json.loads(entry.to_json())
        assert data["record_id"] == entry.record_id
        assert data["allowed"] is True
