"""Built-in health checks for the bridge."""

from __future__ import annotations

import logging

from waymark.accessor import ElementAccessor
from waymark.config import LIMITS
from waymark.health.runner import HealthIssue, IssueSeverity
from waymark.ledger import OperationLedger

logger = logging.getLogger(__name__)


class DocumentStateCheck:
    """Is a document open, editable, and not drowning in warnings?"""

    name = "document_state"

    def __init__(
        self,
        accessor: ElementAccessor,
        warning_threshold: int = LIMITS.WARNING_THRESHOLD,
    ) -> None:
        self._accessor = accessor
        self._warning_threshold = warning_threshold

    def run(self) -> list[HealthIssue]:
        info = self._accessor.document_info()
        if info is None:
            return [HealthIssue(self.name, "no_document", IssueSeverity.ERROR, "No active document")]

        issues: list[HealthIssue] = []
        if not info.is_modifiable:
            issues.append(HealthIssue(
                self.name, "document_locked", IssueSeverity.WARNING, "Document is not modifiable",
            ))
        if info.warning_count > self._warning_threshold:
            issues.append(HealthIssue(
                self.name,
                "many_warnings",
                IssueSeverity.INFO,
                f"{info.warning_count} warnings in document",
            ))
        return issues


class LedgerCapacityCheck:
    """Flags a saturated ledger: older history is being evicted."""

    name = "ledger_capacity"

    def __init__(self, ledger: OperationLedger) -> None:
        self._ledger = ledger

    def run(self) -> list[HealthIssue]:
        if self._ledger.is_full:
            return [HealthIssue(
                self.name, "history_full", IssueSeverity.INFO, "Operation history is at capacity",
            )]
        return []


class OrphanedOperationsCheck:
    """Counts tracked creations that no longer exist in the document."""

    name = "orphaned_operations"

    def __init__(
        self,
        ledger: OperationLedger,
        accessor: ElementAccessor,
        window: int = LIMITS.RECONCILE_WINDOW,
    ) -> None:
        self._ledger = ledger
        self._accessor = accessor
        self._window = window

    def run(self) -> list[HealthIssue]:
        if self._accessor.document_info() is None:
            return []

        missing = 0
        for record in self._ledger.recent("create", self._window):
            missing += sum(1 for i in record.affected_ids if not self._accessor.exists(i))

        if missing:
            logger.debug("%d tracked element(s) missing from document", missing)
            return [HealthIssue(
                self.name,
                "orphaned_operations",
                IssueSeverity.WARNING,
                f"{missing} tracked elements no longer exist",
            )]
        return []
