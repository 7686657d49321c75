"""
Contact-click tracking for directory listings.

The question answered per viewer is "did this session engage with the
listing's contact details at all", so at most one click is recorded per
(session, listing) pair whatever the click type.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum

from marketgate.config import utc_clock
from marketgate.storage import ClickStore
from marketgate.types import LifecycleState, ResourceDescriptor, ResourceType

logger = logging.getLogger(__name__)


class ClickOutcome(str, Enum):
    """Result of a click recording request. Neither value is an error."""
    RECORDED = "recorded"
    DEDUPLICATED = "deduplicated"


class ClickTracker:
    """
    At-most-once-per-session click recorder.

    Deduplication state lives in the injected ClickStore, which must make
    ``insert_if_absent`` atomic.

    Example:
        >>> tracker = ClickTracker(InMemoryClickStore())
        >>> tracker.record_click("sess_1", "svc_1", "email")
        <ClickOutcome.RECORDED: 'recorded'>
        >>> tracker.record_click("sess_1", "svc_1", "phone")
        <ClickOutcome.DEDUPLICATED: 'deduplicated'>
    """

    def __init__(
        self,
        store: ClickStore,
        clock: Callable[[], datetime] = utc_clock,
    ) -> None:
        self._store = store
        self._clock = clock

    @staticmethod
    def is_trackable(listing: ResourceDescriptor) -> bool:
        """Only published directory listings accept click tracking."""
        return (
            listing.resource_type is ResourceType.DIRECTORY_LISTING
            and listing.state is LifecycleState.PUBLISHED
        )

    def record_click(
        self,
        session: str,
        listing_id: str,
        click_type: str,
        now: datetime | None = None,
    ) -> ClickOutcome:
        """
        Record a contact click unless this session already has one for the listing.

        Args:
            session: Viewer session identifier.
            listing_id: The listing that was clicked.
            click_type: Contact channel (email, phone, website, ...). Kept
                only on the first recorded click.
            now: Click time. Defaults to the tracker's clock.

        Returns:
            RECORDED for the first click of the pair, DEDUPLICATED afterwards.
        """
        if not session:
            raise ValueError("session is required for click tracking")
        if not listing_id:
            raise ValueError("listing_id is required for click tracking")

        inserted = self._store.insert_if_absent(
            session, listing_id, click_type, now or self._clock()
        )
        if inserted:
            logger.debug(f"Recorded {click_type} click on listing {listing_id}")
            return ClickOutcome.RECORDED

        logger.debug(f"Deduplicated {click_type} click on listing {listing_id}")
        return ClickOutcome.DEDUPLICATED
