"""Rollback controller: compensating actions and guarded mutations.

Undo is only mechanical for ``Create`` records: delete whatever the create
produced that still exists. ``Modify`` records report that a manual undo is
required even when a snapshot was captured. ``Delete`` records are never
undoable.

``safe_delete`` and ``safe_modify`` wrap document writes with a dependency
check and a verify-and-retry loop respectively, and record their own
ledger entries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import tenacity

from .accessor import ElementAccessor, FieldNotFound, FieldReadOnly
from .errors import (
    DependencyConflictError,
    ExternalMutationFailure,
    NoEligibleOperationError,
    NotFoundError,
    RollbackIneligibleError,
    ValidationError,
)
from .ledger import Create, Delete, Modify, OperationLedger, OperationRecord

logger = logging.getLogger(__name__)


# =============================================================================
# Results
# =============================================================================


@dataclass
class UndoResult:
    undone_record_id: str
    kind: str
    timestamp: datetime
    actions: list[dict[str, Any]] = field(default_factory=list)
    deleted_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "undone_operation_id": self.undone_record_id,
            "operation_type": self.kind,
            "timestamp": self.timestamp.isoformat(),
            "actions": self.actions,
            "deleted_ids": self.deleted_ids,
        }


@dataclass
class SafeDeleteResult:
    deleted_element_id: int
    element_name: str
    deleted_ids: list[int]
    record_id: str

    @property
    def total_deleted(self) -> int:
        return len(self.deleted_ids)

    @property
    def message(self) -> str:
        if self.total_deleted > 1:
            return f"Deleted element and {self.total_deleted - 1} dependent(s)"
        return "Element deleted successfully"

    def to_dict(self) -> dict[str, Any]:
        return {
            "deleted_element_id": self.deleted_element_id,
            "element_name": self.element_name,
            "total_deleted": self.total_deleted,
            "deleted_ids": self.deleted_ids,
            "message": self.message,
            "operation_id": self.record_id,
        }


@dataclass
class _Attempt:
    """Outcome of one write+verify cycle."""

    number: int
    results: list[dict[str, Any]]
    written: int
    verified: bool


@dataclass
class SafeModifyResult:
    element_id: int
    success: bool
    verified: bool
    attempts: int
    modifications_attempted: int
    modifications_succeeded: int
    results: list[dict[str, Any]]
    record_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "element_id": self.element_id,
            "success": self.success,
            "verified": self.verified,
            "attempts": self.attempts,
            "modifications_attempted": self.modifications_attempted,
            "modifications_succeeded": self.modifications_succeeded,
            "results": self.results,
            "operation_id": self.record_id,
        }


# =============================================================================
# Controller
# =============================================================================


class RollbackController:
    """Executes undo and guarded mutations against one ledger and document."""

    def __init__(self, ledger: OperationLedger, accessor: ElementAccessor) -> None:
        self._ledger = ledger
        self._accessor = accessor

    # -------------------------------------------------------------------------
    # Undo
    # -------------------------------------------------------------------------

    def _select(self, operation_id: str | None) -> OperationRecord:
        if operation_id is None:
            record = self._ledger.most_recent_eligible()
            if record is None:
                raise NoEligibleOperationError()
            return record

        record = self._ledger.get(operation_id)
        if record is None:
            if self._ledger.was_consumed(operation_id):
                raise RollbackIneligibleError(
                    "Operation was already undone",
                    operation_id=operation_id,
                    reason="consumed",
                )
            raise NoEligibleOperationError(
                f"No operation {operation_id} in history", operation_id=operation_id
            )
        if not record.rollback_eligible:
            raise RollbackIneligibleError(
                "Operation cannot be rolled back",
                operation_id=record.id,
                operation_type=record.kind_name,
                reason="no_snapshot" if isinstance(record.kind, Modify) else "delete",
            )
        return record

    def undo_last_operation(self, operation_id: str | None = None) -> UndoResult:
        """Undo one record: the given one, or the newest eligible one.

        The record is consumed even if the document write fails part way;
        the raised ``ExternalMutationFailure`` then lists the ids deleted
        before the failure in ``completed``.
        """
        with self._ledger.lock:
            record = self._select(operation_id)
            result = UndoResult(
                undone_record_id=record.id,
                kind=record.kind_name,
                timestamp=record.timestamp,
            )
            try:
                if isinstance(record.kind, Create):
                    self._undo_create(record, result)
                else:
                    result.actions.append({
                        "action": "manual_required",
                        "message": "Modify operations require manual undo in the host application",
                    })
            finally:
                self._ledger.consume(record.id)

        logger.info("Undid %s operation %s", record.kind_name, record.id)
        return result

    def _undo_create(self, record: OperationRecord, result: UndoResult) -> None:
        for element_id in record.affected_ids:
            if not self._accessor.exists(element_id):
                continue
            try:
                self._accessor.delete_cascade(element_id)
            except Exception as e:
                raise ExternalMutationFailure(
                    f"Failed to delete element {element_id} while undoing {record.id}"
                    f" ({len(result.deleted_ids)} already deleted)",
                    operation="undo_create",
                    element_id=element_id,
                    cause=e,
                    completed=list(result.deleted_ids),
                ) from e
            result.deleted_ids.append(element_id)
            result.actions.append({"action": "delete", "element_id": element_id})
        result.actions.append({"summary": f"Deleted {len(result.deleted_ids)} elements"})

    # -------------------------------------------------------------------------
    # Safe delete
    # -------------------------------------------------------------------------

    def safe_delete(self, element_id: int, force: bool = False) -> SafeDeleteResult:
        """Delete an element unless it would silently take dependents with it.

        Raises:
            NotFoundError: The element does not exist.
            DependencyConflictError: Dependents exist and ``force`` is false.
            ExternalMutationFailure: The document refused the delete.
        """
        element = self._accessor.get(element_id)
        if element is None:
            raise NotFoundError("Element not found", resource_type="element", resource_id=element_id)

        try:
            would_delete = self._accessor.preview_delete(element_id)
        except Exception as e:
            logger.warning("Dependency preview for %s failed: %s", element_id, e)
            would_delete = set()

        dependents = sorted(would_delete - {element_id})
        if dependents and not force:
            names = []
            for dep_id in dependents:
                dep = self._accessor.get(dep_id)
                names.append(dep.name if dep is not None else str(dep_id))
            raise DependencyConflictError(
                "Element has dependents. Use force=true to delete anyway.",
                element_id=element_id,
                element_name=element.name,
                element_category=element.category,
                dependents=names,
            )

        try:
            deleted = self._accessor.delete_cascade(element_id)
        except Exception as e:
            raise ExternalMutationFailure(
                f"Failed to delete element {element_id}",
                operation="safe_delete",
                element_id=element_id,
                cause=e,
            ) from e

        deleted_ids = sorted(deleted)
        record = self._ledger.record(
            Delete(tuple(deleted_ids)),
            parameters={"element_id": element_id, "force": force},
        )
        logger.info("Safe-deleted element %s (%d total)", element_id, len(deleted_ids))
        return SafeDeleteResult(
            deleted_element_id=element_id,
            element_name=element.name,
            deleted_ids=deleted_ids,
            record_id=record.id,
        )

    # -------------------------------------------------------------------------
    # Safe modify
    # -------------------------------------------------------------------------

    def safe_modify(
        self,
        element_id: int,
        fields: dict[str, Any],
        verify: bool = True,
        max_retries: int = 1,
    ) -> SafeModifyResult:
        """Write fields, optionally verify, retry the whole cycle on mismatch.

        Records exactly one ``Modify`` entry per call, with no snapshot.

        Raises:
            ValidationError: Empty ``fields`` or negative ``max_retries``.
            NotFoundError: The element does not exist.
            ExternalMutationFailure: The document raised during a write.
        """
        if not fields:
            raise ValidationError("At least one field is required", field="fields")
        if max_retries < 0:
            raise ValidationError("max_retries cannot be negative", field="max_retries", value=max_retries)
        if not self._accessor.exists(element_id):
            raise NotFoundError("Element not found", resource_type="element", resource_id=element_id)

        history: list[dict[str, Any]] = []

        def _should_retry(attempt: _Attempt) -> bool:
            # Nothing written means there is nothing to verify
            return verify and attempt.written > 0 and not attempt.verified

        def _log_retry(state: tenacity.RetryCallState) -> None:
            history.append({
                "attempt": state.attempt_number,
                "status": "verification_failed",
                "retrying": True,
            })
            logger.debug("Verification of element %s failed, retrying", element_id)

        retrying = tenacity.Retrying(
            stop=tenacity.stop_after_attempt(max_retries + 1),
            retry=tenacity.retry_if_result(_should_retry),
            before_sleep=_log_retry,
            retry_error_callback=lambda state: state.outcome.result(),
            reraise=True,
        )
        counter = iter(range(1, max_retries + 2))
        final: _Attempt = retrying(
            lambda: self._write_and_verify(element_id, fields, verify, next(counter))
        )

        success = final.written > 0 and (final.verified or not verify)
        record = self._ledger.record(
            Modify((element_id,)),
            parameters={"element_id": element_id, "fields": dict(fields)},
        )
        return SafeModifyResult(
            element_id=element_id,
            success=success,
            verified=final.verified,
            attempts=final.number,
            modifications_attempted=len(fields),
            modifications_succeeded=final.written,
            results=history + final.results,
            record_id=record.id,
        )

    def _write_and_verify(
        self, element_id: int, fields: dict[str, Any], verify: bool, number: int
    ) -> _Attempt:
        results: list[dict[str, Any]] = []
        written: list[str] = []
        for name, value in fields.items():
            try:
                self._accessor.set_field(element_id, name, value)
            except FieldNotFound:
                results.append({"parameter": name, "status": "skipped", "reason": "Parameter not found"})
                continue
            except FieldReadOnly:
                results.append({"parameter": name, "status": "skipped", "reason": "Read-only"})
                continue
            except Exception as e:
                raise ExternalMutationFailure(
                    f"Failed to write {name} on element {element_id}",
                    operation="safe_modify",
                    element_id=element_id,
                    cause=e,
                ) from e
            written.append(name)
            results.append({"parameter": name, "status": "modified"})

        verified = False
        if verify and written:
            element = self._accessor.get(element_id)
            verified = element is not None and all(
                _contains(element.fields.get(name), fields[name]) for name in written
            )
        return _Attempt(number=number, results=results, written=len(written), verified=verified)


def _contains(actual: Any, expected: Any) -> bool:
    """Case-insensitive containment of the expected value in the stored one."""
    if actual is None:
        return False
    return str(expected).lower() in str(actual).lower()
