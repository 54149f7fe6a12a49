"""Reconciliation: compare what the ledger claims with what the document holds.

Pull model: nothing subscribes to document changes. A scan runs three
stages in order and emits anomalies in emission order:

1. missing_elements: ids from the newest create records that are gone
2. unexpected_elements: ids from the newest delete records that still exist
3. orphaned_tags: tags in a scope whose target no longer resolves

The scan is read-only for both the ledger and the document.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .accessor import ElementAccessor
from .config import LIMITS
from .errors import NotFoundError, ValidationError
from .ledger import OperationLedger

logger = logging.getLogger(__name__)


class AnomalyType(str, Enum):
    MISSING_ELEMENT = "missing_element"
    UNEXPECTED_ELEMENT = "unexpected_element"
    ORPHANED_TAG = "orphaned_tag"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# Names accepted by the ``checks`` filter
CHECK_MISSING = "missing_elements"
CHECK_UNEXPECTED = "unexpected_elements"
CHECK_ORPHANED = "orphaned_tags"
ALL_CHECKS = frozenset({CHECK_MISSING, CHECK_UNEXPECTED, CHECK_ORPHANED})


@dataclass
class Anomaly:
    """A mismatch between recorded intent and observed state."""

    type: AnomalyType
    severity: Severity
    message: str
    suggestion: str
    record_id: str | None = None
    element_id: int | None = None
    expected_action: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "suggestion": self.suggestion,
        }
        if self.record_id is not None:
            result["operation_id"] = self.record_id
        if self.element_id is not None:
            result["element_id"] = self.element_id
        if self.expected_action is not None:
            result["expected_action"] = self.expected_action
        return result


@dataclass
class AnomalyReport:
    anomalies: list[Anomaly] = field(default_factory=list)

    @property
    def anomaly_count(self) -> int:
        return len(self.anomalies)

    @property
    def has_anomalies(self) -> bool:
        return len(self.anomalies) > 0

    @property
    def recommendation(self) -> str:
        if self.has_anomalies:
            return "Review anomalies and consider corrective actions"
        return "No anomalies detected"

    def to_dict(self) -> dict[str, Any]:
        return {
            "anomaly_count": self.anomaly_count,
            "has_anomalies": self.has_anomalies,
            "anomalies": [a.to_dict() for a in self.anomalies],
            "recommendation": self.recommendation,
        }


class ReconciliationEngine:
    """Diagnoses drift between the ledger and the live document."""

    def __init__(
        self,
        ledger: OperationLedger,
        accessor: ElementAccessor,
        *,
        window: int = LIMITS.RECONCILE_WINDOW,
    ) -> None:
        self._ledger = ledger
        self._accessor = accessor
        self._window = window

    def detect_anomalies(
        self,
        scope: int | None = None,
        checks: set[str] | frozenset[str] | None = None,
    ) -> AnomalyReport:
        """Run the enabled stages and collect anomalies.

        Args:
            scope: Optional view/region id for the orphaned-tag stage.
            checks: Subset of ``ALL_CHECKS``; defaults to every check.

        Raises:
            ValidationError: Unknown check name.
            NotFoundError: ``scope`` does not resolve.
        """
        enabled = ALL_CHECKS if checks is None else frozenset(checks)
        unknown = enabled - ALL_CHECKS
        if unknown:
            raise ValidationError(
                f"Unknown anomaly checks: {', '.join(sorted(unknown))}",
                field="checks",
                constraint="one of: " + ", ".join(sorted(ALL_CHECKS)),
            )

        report = AnomalyReport()
        with self._ledger.lock:
            if CHECK_MISSING in enabled:
                report.anomalies.extend(self._missing_elements())
            if CHECK_UNEXPECTED in enabled:
                report.anomalies.extend(self._unexpected_elements())
            if scope is not None and CHECK_ORPHANED in enabled:
                report.anomalies.extend(self._orphaned_tags(scope))

        if report.has_anomalies:
            logger.info("Reconciliation found %d anomaly(ies)", report.anomaly_count)
        return report

    def _missing_elements(self) -> list[Anomaly]:
        found: list[Anomaly] = []
        for record in self._ledger.recent("create", self._window):
            for element_id in record.affected_ids:
                if not self._accessor.exists(element_id):
                    found.append(Anomaly(
                        type=AnomalyType.MISSING_ELEMENT,
                        severity=Severity.ERROR,
                        record_id=record.id,
                        element_id=element_id,
                        expected_action="create",
                        message=f"Element {element_id} was created but no longer exists",
                        suggestion="Element may have been deleted or operation failed silently",
                    ))
        return found

    def _unexpected_elements(self) -> list[Anomaly]:
        found: list[Anomaly] = []
        for record in self._ledger.recent("delete", self._window):
            for element_id in record.affected_ids:
                if self._accessor.exists(element_id):
                    found.append(Anomaly(
                        type=AnomalyType.UNEXPECTED_ELEMENT,
                        severity=Severity.WARNING,
                        record_id=record.id,
                        element_id=element_id,
                        expected_action="delete",
                        message=f"Element {element_id} should have been deleted but still exists",
                        suggestion="Delete operation may have failed or been rolled back",
                    ))
        return found

    def _orphaned_tags(self, scope: int) -> list[Anomaly]:
        tags = self._accessor.list_tags(scope)
        if tags is None:
            raise NotFoundError(f"Scope {scope} not found", resource_type="scope", resource_id=scope)

        found: list[Anomaly] = []
        for tag in tags:
            try:
                if not tag.target_ids:
                    continue
                if self._accessor.exists(tag.target_ids[0]):
                    continue
            except Exception as e:
                logger.debug("Skipping tag %s, target lookup failed: %s", tag.id, e)
                continue
            found.append(Anomaly(
                type=AnomalyType.ORPHANED_TAG,
                severity=Severity.WARNING,
                element_id=tag.id,
                message="Tag is pointing to a deleted or missing element",
                suggestion="Delete the orphaned tag",
            ))
        return found
