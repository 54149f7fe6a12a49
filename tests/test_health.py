"""Tests for the health check runner and the built-in checks.

Run with: pytest tests/test_health.py -v
"""

from __future__ import annotations

from unittest.mock import MagicMock

from waymark.accessor import ElementAccessor
from waymark.health import (
    DocumentStateCheck,
    HealthCheckRunner,
    HealthIssue,
    HealthStatus,
    IssueSeverity,
    LedgerCapacityCheck,
    OrphanedOperationsCheck,
)
from waymark.ledger import Create, OperationLedger
from waymark.memory_document import InMemoryDocument
from waymark.session import BridgeSession


class MockHealthCheck:
    """Mock health check for testing."""

    def __init__(self, name: str, issues: list[HealthIssue]) -> None:
        self._name = name
        self._issues = issues
        self.call_count = 0

    @property
    def name(self) -> str:
        return self._name

    def run(self) -> list[HealthIssue]:
        self.call_count += 1
        return self._issues


class FailingHealthCheck:
    """Mock health check that raises an exception."""

    name = "failing_check"

    def run(self) -> list[HealthIssue]:
        raise RuntimeError("Intentional test failure")


# =============================================================================
# Runner
# =============================================================================


def test_register_and_run_checks():
    """Runner should register and run checks."""
    runner = HealthCheckRunner()
    check1 = MockHealthCheck("check1", [])
    check2 = MockHealthCheck(
        "check2", [HealthIssue("check2", "minor", IssueSeverity.WARNING, "Minor issue")]
    )
    runner.register(check1)
    runner.register(check2)

    issues = runner.run_all_checks()

    assert len(issues) == 1
    assert check1.call_count == 1
    assert check2.call_count == 1
    assert runner.check_names == ["check1", "check2"]


def test_failing_check_becomes_warning():
    runner = HealthCheckRunner()
    runner.register(FailingHealthCheck())

    report = runner.run()

    assert report.status == HealthStatus.DEGRADED
    assert report.issues[0].type == "check_failed"
    assert report.issues[0].check_name == "failing_check"


def test_status_folding():
    runner = HealthCheckRunner()
    info = HealthIssue("a", "note", IssueSeverity.INFO, "fyi")
    warning = HealthIssue("a", "meh", IssueSeverity.WARNING, "meh")
    error = HealthIssue("a", "bad", IssueSeverity.ERROR, "bad")

    assert runner._compute_status([]) == HealthStatus.HEALTHY
    assert runner._compute_status([info]) == HealthStatus.HEALTHY
    assert runner._compute_status([info, warning]) == HealthStatus.DEGRADED
    assert runner._compute_status([warning, error]) == HealthStatus.UNHEALTHY


# =============================================================================
# Built-in checks
# =============================================================================


def test_healthy_session(session: BridgeSession):
    report = session.health_report()

    assert report.status == HealthStatus.HEALTHY
    assert report.issues == []
    data = report.to_dict()
    assert data["status"] == "healthy"
    assert data["document"]["title"] == "Test Project"
    assert data["operation_history"] == {"count": 0, "max_size": 50}
    assert data["issue_count"] == 0


def test_no_document_is_unhealthy():
    accessor = MagicMock(spec=ElementAccessor)
    accessor.document_info.return_value = None
    ledger = OperationLedger(5)
    ledger.record(Create((1,)))
    session = BridgeSession(accessor=accessor, ledger=ledger)

    report = session.health_report()

    assert report.status == HealthStatus.UNHEALTHY
    assert [i.type for i in report.issues] == ["no_document"]
    assert report.details["document"] is None
    accessor.exists.assert_not_called()


def test_locked_document_is_degraded():
    doc = InMemoryDocument("Locked", modifiable=False)
    issues = DocumentStateCheck(doc).run()

    assert [(i.type, i.severity) for i in issues] == [("document_locked", IssueSeverity.WARNING)]


def test_many_warnings_is_informational():
    doc = InMemoryDocument("Noisy", warning_count=11)
    assert [i.type for i in DocumentStateCheck(doc).run()] == ["many_warnings"]

    doc.warning_count = 10
    assert DocumentStateCheck(doc).run() == []


def test_full_ledger_is_informational():
    ledger = OperationLedger(2)
    check = LedgerCapacityCheck(ledger)
    ledger.record(Create((1,)))
    assert check.run() == []

    ledger.record(Create((2,)))
    issues = check.run()
    assert issues[0].type == "history_full"
    assert issues[0].severity == IssueSeverity.INFO


def test_orphaned_operations_counts_missing_creations(
    ledger: OperationLedger, document: InMemoryDocument
):
    kept = document.add_element("Wall")
    ledger.record(Create((kept, 900, 901)))
    ledger.record(Create((902,)))

    issues = OrphanedOperationsCheck(ledger, document).run()

    assert len(issues) == 1
    assert issues[0].severity == IssueSeverity.WARNING
    assert issues[0].message == "3 tracked elements no longer exist"


def test_orphaned_operations_only_reads_newest_window(
    ledger: OperationLedger, document: InMemoryDocument
):
    ledger.record(Create((900,)))
    kept = document.add_element("Wall")
    for _ in range(3):
        ledger.record(Create((kept,)))

    assert OrphanedOperationsCheck(ledger, document, window=3).run() == []
    assert len(OrphanedOperationsCheck(ledger, document, window=4).run()) == 1
