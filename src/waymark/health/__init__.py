"""Bridge health: document state, ledger saturation, tracked-element drift."""

from waymark.health.checks import DocumentStateCheck, LedgerCapacityCheck, OrphanedOperationsCheck
from waymark.health.runner import (
    HealthCheckRunner,
    HealthIssue,
    HealthReport,
    HealthStatus,
    IssueSeverity,
)

__all__ = [
    "DocumentStateCheck",
    "HealthCheckRunner",
    "HealthIssue",
    "HealthReport",
    "HealthStatus",
    "IssueSeverity",
    "LedgerCapacityCheck",
    "OrphanedOperationsCheck",
]
