"""
Mutation descriptions and the storage collaborator interface.

The engine never writes to storage itself. Every decision that changes a
resource returns a :class:`Mutation` describing the intended atomic write,
and the storage collaborator is responsible for applying it without lost
updates under concurrent callers. The in-memory stores in this module are
reference implementations of that contract, guarded by a lock around each
read-modify-write.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from marketgate.exceptions import ConflictError, ResourceNotFoundError
from marketgate.types import LoadedResource, NotFound, ResourceDescriptor, ResourceType

logger = logging.getLogger(__name__)

_DESCRIPTOR_FIELDS = frozenset(f.name for f in fields(ResourceDescriptor))
_IMMUTABLE_FIELDS = frozenset({"resource_type", "resource_id", "owner_id", "created_at"})


@dataclass(frozen=True)
class Mutation:
    """
    Intended atomic write against a single resource.

    Attributes:
        resource_type: Type of the target resource.
        resource_id: ID of the target resource.
        expect: Compare-and-set preconditions, field -> expected value.
        set_fields: Fields to overwrite.
        set_if_absent: Write-once fields, only written while still None.
        add_members: Set fields -> members to add.
        remove_members: Set fields -> members to remove.

    Example:
        >>> Mutation(
        ...     resource_type=ResourceType.COMMENT,
        ...     resource_id="c_1",
        ...     add_members={"liked_by": frozenset({"u_2"})},
        ... )
    """
    resource_type: ResourceType
    resource_id: str
    expect: dict[str, Any] = field(default_factory=dict)
    set_fields: dict[str, Any] = field(default_factory=dict)
    set_if_absent: dict[str, Any] = field(default_factory=dict)
    add_members: dict[str, frozenset[str]] = field(default_factory=dict)
    remove_members: dict[str, frozenset[str]] = field(default_factory=dict)

    @property
    def is_noop(self) -> bool:
        """True when applying this mutation would write nothing."""
        return not (
            self.set_fields or self.set_if_absent
            or self.add_members or self.remove_members
        )

    @property
    def label(self) -> str:
        return f"{ResourceType(self.resource_type).value}:{self.resource_id}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "resource": self.label,
            "expect": {k: _plain(v) for k, v in self.expect.items()},
            "set_fields": {k: _plain(v) for k, v in self.set_fields.items()},
            "set_if_absent": {k: _plain(v) for k, v in self.set_if_absent.items()},
            "add_members": {k: sorted(v) for k, v in self.add_members.items()},
            "remove_members": {k: sorted(v) for k, v in self.remove_members.items()},
        }


def _plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return getattr(value, "value", value)


@runtime_checkable
class ResourceStore(Protocol):
    """Narrow load/save interface to the document store."""

    def load(self, resource_type: ResourceType, resource_id: str) -> LoadedResource:
        """Load a snapshot, or NotFound when the resource does not exist."""
        ...

    def apply(self, mutation: Mutation) -> ResourceDescriptor:
        """Apply a mutation atomically and return the stored result."""
        ...


@runtime_checkable
class ClickStore(Protocol):
    """Storage for click records keyed on (session, listing)."""

    def insert_if_absent(
        self,
        session_id: str,
        listing_id: str,
        click_type: str,
        at: datetime,
    ) -> bool:
        """Insert a record unless one exists. Returns True if inserted."""
        ...


class InMemoryResourceStore:
    """
    Thread-safe in-memory resource store.

    Example:
        >>> store = InMemoryResourceStore()
        >>> store.put(listing)
        >>> store.load(ResourceType.DIRECTORY_LISTING, "svc_1")
    """

    def __init__(self) -> None:
        self._resources: dict[tuple[ResourceType, str], ResourceDescriptor] = {}
        self._lock = threading.RLock()

    def put(self, resource: ResourceDescriptor) -> None:
        """Insert or replace a resource snapshot."""
        with self._lock:
            self._resources[(resource.resource_type, resource.resource_id)] = resource

    def delete(self, resource_type: ResourceType, resource_id: str) -> bool:
        """Remove a resource. Returns True if it existed."""
        with self._lock:
            key = (ResourceType(resource_type), resource_id)
            return self._resources.pop(key, None) is not None

    def load(self, resource_type: ResourceType, resource_id: str) -> LoadedResource:
        resource_type = ResourceType(resource_type)
        with self._lock:
            resource = self._resources.get((resource_type, resource_id))
        if resource is None:
            return NotFound(resource_type, resource_id)
        return resource

    def apply(self, mutation: Mutation) -> ResourceDescriptor:
        """
        Apply a mutation as one read-modify-write.

        Raises:
            ResourceNotFoundError: If the target resource does not exist.
            ConflictError: If an ``expect`` precondition does not hold.
            ValueError: If the mutation names an unknown or immutable field.
        """
        key = (ResourceType(mutation.resource_type), mutation.resource_id)
        with self._lock:
            current = self._resources.get(key)
            if current is None:
                raise ResourceNotFoundError(key[0].value, mutation.resource_id)

            for name, expected in mutation.expect.items():
                self._check_field(name)
                actual = getattr(current, name)
                if actual != expected:
                    logger.warning(
                        f"Conflict applying mutation to {mutation.label}: "
                        f"{name} expected {expected!r}, found {actual!r}"
                    )
                    raise ConflictError(mutation.label, name, expected, actual)

            changes: dict[str, Any] = {}
            for name, value in mutation.set_fields.items():
                self._check_writable(name)
                changes[name] = value
            for name, value in mutation.set_if_absent.items():
                self._check_writable(name)
                if getattr(current, name) is None:
                    changes[name] = value

            touched = set(mutation.add_members) | set(mutation.remove_members)
            for name in touched:
                self._check_writable(name)
                members = set(getattr(current, name))
                members |= mutation.add_members.get(name, frozenset())
                members -= mutation.remove_members.get(name, frozenset())
                changes[name] = frozenset(members)

            updated = replace(current, **changes) if changes else current
            self._resources[key] = updated
            logger.debug(f"Applied mutation to {mutation.label}: {sorted(changes)}")
            return updated

    def __len__(self) -> int:
        with self._lock:
            return len(self._resources)

    @staticmethod
    def _check_field(name: str) -> None:
        if name not in _DESCRIPTOR_FIELDS:
            raise ValueError(f"Unknown resource field: {name}")

    @classmethod
    def _check_writable(cls, name: str) -> None:
        cls._check_field(name)
        if name in _IMMUTABLE_FIELDS:
            raise ValueError(f"Field '{name}' cannot be changed after creation")


@dataclass(frozen=True)
class RecordedClick:
    """A stored contact-click record for one (session, listing) pair."""
    session_id: str
    listing_id: str
    click_type: str
    recorded_at: datetime


class InMemoryClickStore:
    """
    Thread-safe in-memory click store.

    Only the first click of a session on a listing is kept, together with
    its click type.
    """

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], RecordedClick] = {}
        self._lock = threading.RLock()

    def insert_if_absent(
        self,
        session_id: str,
        listing_id: str,
        click_type: str,
        at: datetime,
    ) -> bool:
        key = (session_id, listing_id)
        with self._lock:
            if key in self._records:
                return False
            self._records[key] = RecordedClick(session_id, listing_id, click_type, at)
            return True

    def get(self, session_id: str, listing_id: str) -> RecordedClick | None:
        with self._lock:
            return self._records.get((session_id, listing_id))

    def engaged_sessions(self, listing_id: str) -> int:
        """Number of distinct sessions that engaged with a listing."""
        with self._lock:
            return sum(1 for (_, lid) in self._records if lid == listing_id)

    def by_click_type(self, listing_id: str) -> dict[str, int]:
        """Count of recorded sessions per first click type for a listing."""
        counts: dict[str, int] = {}
        with self._lock:
            for record in self._records.values():
                if record.listing_id == listing_id:
                    counts[record.click_type] = counts.get(record.click_type, 0) + 1
        return counts
