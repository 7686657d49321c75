"""
Tests for the in-memory storage collaborators.

Tests cover:
- Mutation application and compare-and-set
- Write-once fields and set membership
- Protocol conformance
- Concurrent access
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from marketgate import (
    ClickStore,
    ConflictError,
    InMemoryClickStore,
    InMemoryResourceStore,
    LifecycleState,
    Mutation,
    NotFound,
    ResourceNotFoundError,
    ResourceStore,
    ResourceType,
)


class TestMutation:
    """Tests for the Mutation description."""

    def test_noop(self):
        mutation = Mutation(ResourceType.PRODUCT, "p_1", expect={"state": LifecycleState.DRAFT})
        assert mutation.is_noop is True

    def test_to_dict(self, now):
        """Test that enums and datetimes are serialized to plain values."""
        mutation = Mutation(
            ResourceType.PRODUCT,
            "p_1",
            expect={"state": LifecycleState.DRAFT},
            set_fields={"state": LifecycleState.PUBLISHED},
            set_if_absent={"published_at": now},
            add_members={"liked_by": frozenset({"b", "a"})},
        )
        data = mutation.to_dict()
        assert data["resource"] == "product:p_1"
        assert data["expect"] == {"state": "draft"}
        assert data["set_if_absent"] == {"published_at": now.isoformat()}
        assert data["add_members"] == {"liked_by": ["a", "b"]}


class TestInMemoryResourceStore:
    """Tests for InMemoryResourceStore."""

    def test_protocol_conformance(self, resource_store):
        assert isinstance(resource_store, ResourceStore)
        assert isinstance(InMemoryClickStore(), ClickStore)

    def test_load_missing_returns_not_found(self, resource_store):
        """Test that a missing resource is an outcome, not an error."""
        loaded = resource_store.load(ResourceType.PRODUCT, "missing")
        assert loaded == NotFound(ResourceType.PRODUCT, "missing")

    def test_apply_sets_fields(self, resource_store, now):
        mutation = Mutation(
            ResourceType.DIRECTORY_LISTING,
            "svc_1",
            expect={"state": LifecycleState.DRAFT},
            set_fields={"state": LifecycleState.PUBLISHED, "updated_at": now},
        )
        updated = resource_store.apply(mutation)
        assert updated.state is LifecycleState.PUBLISHED
        assert resource_store.load(ResourceType.DIRECTORY_LISTING, "svc_1") == updated

    def test_expect_mismatch_raises_conflict(self, resource_store):
        """Test that a stale precondition is rejected."""
        mutation = Mutation(
            ResourceType.DIRECTORY_LISTING,
            "svc_2",
            expect={"state": LifecycleState.DRAFT},
            set_fields={"state": LifecycleState.PUBLISHED},
        )
        with pytest.raises(ConflictError) as exc_info:
            resource_store.apply(mutation)
        assert exc_info.value.field_name == "state"

    def test_set_if_absent_is_write_once(self, resource_store, published_listing, now):
        """Test that an existing published_at is never overwritten."""
        mutation = Mutation(
            ResourceType.DIRECTORY_LISTING,
            "svc_2",
            set_if_absent={"published_at": now},
        )
        updated = resource_store.apply(mutation)
        assert updated.published_at == published_listing.published_at
        assert updated.published_at == now - timedelta(days=2)

    def test_membership_changes(self, resource_store):
        """Test that add and remove merge into the stored set."""
        add = Mutation(
            ResourceType.COMMENT, "cmt_1", add_members={"liked_by": frozenset({"a", "b"})}
        )
        resource_store.apply(add)
        remove = Mutation(
            ResourceType.COMMENT, "cmt_1", remove_members={"liked_by": frozenset({"a"})}
        )
        updated = resource_store.apply(remove)
        assert updated.liked_by == frozenset({"b"})
        assert updated.like_count == 1

    def test_immutable_field_rejected(self, resource_store):
        """Test that ownership cannot be rewritten."""
        mutation = Mutation(
            ResourceType.DIRECTORY_LISTING, "svc_1", set_fields={"owner_id": "thief"}
        )
        with pytest.raises(ValueError):
            resource_store.apply(mutation)

    def test_unknown_field_rejected(self, resource_store):
        mutation = Mutation(ResourceType.DIRECTORY_LISTING, "svc_1", set_fields={"color": "red"})
        with pytest.raises(ValueError):
            resource_store.apply(mutation)

    def test_missing_target_raises(self, resource_store):
        mutation = Mutation(ResourceType.PRODUCT, "missing", set_fields={"is_featured": True})
        with pytest.raises(ResourceNotFoundError):
            resource_store.apply(mutation)

    def test_delete(self, resource_store):
        assert resource_store.delete(ResourceType.COMMENT, "cmt_1") is True
        assert resource_store.delete(ResourceType.COMMENT, "cmt_1") is False
        assert len(resource_store) == 3

    def test_concurrent_likes_are_not_lost(self, resource_store):
        """Test that concurrent likes by distinct actors all land."""
        def like(i: int) -> None:
            resource_store.apply(
                Mutation(
                    ResourceType.COMMENT,
                    "cmt_1",
                    add_members={"liked_by": frozenset({f"user_{i}"})},
                )
            )

        with ThreadPoolExecutor(max_workers=20) as executor:
            futures = [executor.submit(like, i) for i in range(100)]
            for f in futures:
                f.result()

        comment = resource_store.load(ResourceType.COMMENT, "cmt_1")
        assert comment.like_count == 100

    def test_concurrent_publish_single_winner(self, resource_store, now):
        """Test that only one compare-and-set publish succeeds."""
        results = []

        def publish() -> None:
            mutation = Mutation(
                ResourceType.DIRECTORY_LISTING,
                "svc_1",
                expect={"state": LifecycleState.DRAFT},
                set_fields={"state": LifecycleState.PUBLISHED},
                set_if_absent={"published_at": now},
            )
            try:
                resource_store.apply(mutation)
                results.append(True)
            except ConflictError:
                results.append(False)

        with ThreadPoolExecutor(max_workers=10) as executor:
            futures = [executor.submit(publish) for _ in range(20)]
            for f in futures:
                f.result()

        assert sum(1 for r in results if r) == 1


class TestInMemoryClickStore:
    """Tests for InMemoryClickStore."""

    def test_first_click_kept(self, click_store, now):
        assert click_store.insert_if_absent("s1", "svc_2", "email", now) is True
        assert click_store.insert_if_absent("s1", "svc_2", "phone", now) is False

        record = click_store.get("s1", "svc_2")
        assert record.click_type == "email"
        assert record.recorded_at == now

    def test_engagement_counts(self, click_store, now):
        click_store.insert_if_absent("s1", "svc_2", "email", now)
        click_store.insert_if_absent("s2", "svc_2", "phone", now)
        click_store.insert_if_absent("s3", "svc_2", "email", now)
        click_store.insert_if_absent("s1", "svc_9", "email", now)

        assert click_store.engaged_sessions("svc_2") == 3
        assert click_store.by_click_type("svc_2") == {"email": 2, "phone": 1}

    def test_concurrent_inserts_single_record(self, click_store, now):
        """Test that concurrent clicks from one session record once."""
        with ThreadPoolExecutor(max_workers=20) as executor:
            futures = [
                executor.submit(click_store.insert_if_absent, "s1", "svc_2", "email", now)
                for _ in range(50)
            ]
            results = [f.result() for f in futures]

        assert results.count(True) == 1
        assert click_store.engaged_sessions("svc_2") == 1
