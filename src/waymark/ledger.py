"""Operation ledger: bounded journal of mutation attempts.

Every mutation command records one entry after it runs, whether or not the
document accepted the change. The ledger is what reconciliation compares
against the live document and what rollback consumes.

Kinds are a closed set of frozen dataclasses (``Create``, ``Modify``,
``Delete``). Rollback eligibility is derived from the kind, never stored:

- ``Create`` is always eligible (undo = delete what was created)
- ``Modify`` is eligible only when it carries an original snapshot
- ``Delete`` is never eligible (nothing of the deleted element is kept)

The ledger holds at most ``capacity`` records in insertion order; appending
past capacity evicts the oldest. Nothing is persisted.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Union
from uuid import uuid4

from .config import LIMITS
from .errors import ValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# Operation kinds
# =============================================================================


@dataclass(frozen=True)
class Create:
    """Elements the mutation claims to have created."""

    affected_ids: tuple[int, ...] = ()

    name = "create"

    @property
    def rollback_eligible(self) -> bool:
        return True


@dataclass(frozen=True)
class Modify:
    """Elements whose fields were written."""

    affected_ids: tuple[int, ...] = ()
    original_snapshot: dict[str, Any] | None = None

    name = "modify"

    @property
    def rollback_eligible(self) -> bool:
        return bool(self.original_snapshot)


@dataclass(frozen=True)
class Delete:
    """Elements the mutation removed."""

    affected_ids: tuple[int, ...] = ()

    name = "delete"

    @property
    def rollback_eligible(self) -> bool:
        return False


OperationKind = Union[Create, Modify, Delete]

KIND_NAMES = ("create", "modify", "delete")


def make_kind(
    kind_name: str,
    affected_ids: Iterable[int],
    original_snapshot: dict[str, Any] | None = None,
) -> OperationKind:
    """Build an operation kind from its wire name."""
    ids = tuple(affected_ids)
    normalized = kind_name.strip().lower()
    if normalized == "create":
        return Create(ids)
    if normalized == "modify":
        return Modify(ids, original_snapshot)
    if normalized == "delete":
        return Delete(ids)
    raise ValidationError(
        f"Unknown operation type: {kind_name}",
        field="operation_type",
        value=kind_name,
        constraint="one of: " + ", ".join(KIND_NAMES),
    )


# =============================================================================
# Records
# =============================================================================


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class OperationRecord:
    """One completed mutation attempt."""

    id: str
    kind: OperationKind
    timestamp: datetime
    parameters: dict[str, Any] | None = None

    @property
    def kind_name(self) -> str:
        return self.kind.name

    @property
    def affected_ids(self) -> tuple[int, ...]:
        return self.kind.affected_ids

    @property
    def rollback_eligible(self) -> bool:
        return self.kind.rollback_eligible

    def to_summary(self) -> dict[str, Any]:
        return {
            "operation_id": self.id,
            "operation_type": self.kind_name,
            "timestamp": self.timestamp.isoformat(),
            "affected_count": len(self.affected_ids),
            "can_rollback": self.rollback_eligible,
        }

    def to_dict(self) -> dict[str, Any]:
        result = self.to_summary()
        result["affected_element_ids"] = list(self.affected_ids)
        if isinstance(self.kind, Modify) and self.kind.original_snapshot:
            result["original_state"] = copy.deepcopy(self.kind.original_snapshot)
        if self.parameters:
            result["parameters"] = copy.deepcopy(self.parameters)
        return result


@dataclass
class HistoryPage:
    """Newest-first slice of the ledger."""

    total: int
    operations: list[OperationRecord] = field(default_factory=list)

    @property
    def returned(self) -> int:
        return len(self.operations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_records": self.total,
            "returned": self.returned,
            "operations": [op.to_summary() for op in self.operations],
        }


# =============================================================================
# Ledger
# =============================================================================


class OperationLedger:
    """Bounded append-evict journal of operation records.

    Each instance is independent; construct one per session.
    """

    def __init__(
        self,
        capacity: int = LIMITS.HISTORY_SIZE,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if capacity < 1:
            raise ValidationError("Ledger capacity must be at least 1", field="capacity", value=capacity)
        self._capacity = capacity
        self._clock = clock
        self._records: deque[OperationRecord] = deque()
        # Only the most recent consumed ids are remembered
        self._consumed: deque[str] = deque(maxlen=capacity)
        self._lock = threading.RLock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_full(self) -> bool:
        with self._lock:
            return len(self._records) >= self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[OperationRecord]:
        """Iterate oldest first over a snapshot of the ledger."""
        with self._lock:
            return iter(list(self._records))

    def _new_id(self) -> str:
        """Short id, unique among live records and remembered consumed ids."""
        live = {r.id for r in self._records}
        while True:
            candidate = uuid4().hex[:8]
            if candidate not in live and candidate not in self._consumed:
                return candidate

    def record(
        self,
        kind: OperationKind,
        parameters: dict[str, Any] | None = None,
    ) -> OperationRecord:
        """Append a record, evicting the oldest when over capacity.

        ``parameters`` and any Modify snapshot are deep-copied, so later
        changes to the caller's dicts never reach the stored record.
        """
        if isinstance(kind, Modify) and kind.original_snapshot is not None:
            kind = Modify(kind.affected_ids, copy.deepcopy(kind.original_snapshot))
        with self._lock:
            record = OperationRecord(
                id=self._new_id(),
                kind=kind,
                timestamp=self._clock(),
                parameters=copy.deepcopy(parameters),
            )
            self._records.append(record)
            while len(self._records) > self._capacity:
                evicted = self._records.popleft()
                logger.debug("Evicted operation %s (%s)", evicted.id, evicted.kind_name)
            logger.debug(
                "Recorded %s operation %s affecting %d element(s)",
                record.kind_name,
                record.id,
                len(record.affected_ids),
            )
            return record

    def history(self, limit: int = LIMITS.HISTORY_DEFAULT_LIMIT) -> HistoryPage:
        """Newest-first summaries, truncated to ``limit``."""
        if limit < 1:
            raise ValidationError("limit must be a positive integer", field="limit", value=limit)
        with self._lock:
            newest_first = list(reversed(self._records))
            return HistoryPage(total=len(self._records), operations=newest_first[:limit])

    def clear(self) -> int:
        """Empty the ledger; returns how many records were dropped."""
        with self._lock:
            count = len(self._records)
            self._records.clear()
            logger.info("Cleared %d operation record(s)", count)
            return count

    def get(self, record_id: str) -> OperationRecord | None:
        with self._lock:
            for record in self._records:
                if record.id == record_id:
                    return record
            return None

    def find_affecting(self, element_id: int) -> list[OperationRecord]:
        """Records whose affected ids include ``element_id``, newest first."""
        with self._lock:
            return [r for r in reversed(self._records) if element_id in r.affected_ids]

    def recent(self, kind_name: str, count: int) -> list[OperationRecord]:
        """The ``count`` newest records of one kind, newest first."""
        with self._lock:
            matches = [r for r in reversed(self._records) if r.kind_name == kind_name]
            return matches[:count]

    def most_recent_eligible(self) -> OperationRecord | None:
        with self._lock:
            for record in reversed(self._records):
                if record.rollback_eligible:
                    return record
            return None

    def consume(self, record_id: str) -> OperationRecord | None:
        """Remove a record so it cannot be undone twice."""
        with self._lock:
            record = self.get(record_id)
            if record is None:
                return None
            self._records.remove(record)
            self._consumed.append(record_id)
            logger.debug("Consumed operation %s", record_id)
            return record

    def was_consumed(self, record_id: str) -> bool:
        with self._lock:
            return record_id in self._consumed

    @property
    def lock(self) -> threading.RLock:
        """Held by engines that read the ledger and the document together."""
        return self._lock
