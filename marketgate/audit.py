"""
In-memory decision log.

Records every decision the engine facade makes so authorization outcomes
can be inspected after the fact. Records are kept in memory; callers that
need durable audit trails should subclass and persist in ``record``.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from marketgate.types import ActorContext, Decision

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DecisionRecord:
    """
    One logged decision.

    Attributes:
        operation: Engine operation that produced the decision
            (e.g. "can_perform", "transition").
        actor_id: Acting identity (None for anonymous callers).
        subject: What was decided on, a ``type:id`` label or a capability.
        action: Action, capability or target state requested.
        allowed: Outcome.
        reason: Denial reason code, if denied.
        rule: Rule that decided.
    """
    operation: str
    actor_id: str | None
    subject: str
    action: str
    allowed: bool
    reason: str | None = None
    rule: str | None = None
    record_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "timestamp": self.timestamp.isoformat(),
            "operation": self.operation,
            "actor_id": self.actor_id,
            "subject": self.subject,
            "action": self.action,
            "allowed": self.allowed,
            "reason": self.reason,
            "rule": self.rule,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)


class InMemoryDecisionLog:
    """
    Thread-safe in-memory decision log.

    Example:
        >>> log = InMemoryDecisionLog()
        >>> engine = LifecycleEngine(decision_log=log)
        >>> engine.authorize(actor, listing, Action.UPDATE)
        >>> log.records[-1].allowed
        True
    """

    def __init__(self, max_records: int | None = 10_000) -> None:
        self._records: list[DecisionRecord] = []
        self._max_records = max_records
        self._lock = threading.RLock()

    @property
    def records(self) -> list[DecisionRecord]:
        with self._lock:
            return list(self._records)

    def record(
        self,
        operation: str,
        actor: ActorContext | None,
        subject: str,
        action: str,
        decision: Decision,
    ) -> DecisionRecord:
        """Append a decision and return the stored record."""
        entry = DecisionRecord(
            operation=operation,
            actor_id=actor.actor_id if actor else None,
            subject=subject,
            action=action,
            allowed=decision.allowed,
            reason=decision.reason.value if decision.reason else None,
            rule=decision.rule,
        )
        with self._lock:
            self._records.append(entry)
            if self._max_records is not None and len(self._records) > self._max_records:
                del self._records[: len(self._records) - self._max_records]
        return entry

    def denials(self) -> list[DecisionRecord]:
        with self._lock:
            return [r for r in self._records if not r.allowed]

    def for_actor(self, actor_id: str) -> list[DecisionRecord]:
        with self._lock:
            return [r for r in self._records if r.actor_id == actor_id]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
