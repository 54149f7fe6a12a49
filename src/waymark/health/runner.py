"""Health check runner: orchestrates all registered checks.

Unlike reconciliation, health checks describe the bridge as a whole: is a
document open and editable, is the ledger saturated, are tracked creations
still present. A check that raises is reported as a warning issue instead
of aborting the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class IssueSeverity(str, Enum):
    """Health issue severity levels."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthIssue:
    """One finding from a health check."""

    check_name: str
    type: str
    severity: IssueSeverity
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "check_name": self.check_name,
            "type": self.type,
            "severity": self.severity.value,
            "message": self.message,
        }


@dataclass
class HealthReport:
    status: HealthStatus
    issues: list[HealthIssue] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def issue_count(self) -> int:
        return len(self.issues)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            **self.details,
            "issue_count": self.issue_count,
            "issues": [i.to_dict() for i in self.issues],
        }


class HealthCheck(Protocol):
    """Protocol for health check implementations."""

    @property
    def name(self) -> str: ...

    def run(self) -> list[HealthIssue]: ...


class HealthCheckRunner:
    """Runs every registered check and folds the issues into one status."""

    def __init__(self) -> None:
        self._checks: list[HealthCheck] = []

    def register(self, check: HealthCheck) -> None:
        """Register a health check."""
        self._checks.append(check)

    @property
    def check_names(self) -> list[str]:
        return [c.name for c in self._checks]

    def run_all_checks(self) -> list[HealthIssue]:
        issues: list[HealthIssue] = []
        for check in self._checks:
            try:
                issues.extend(check.run())
            except Exception:
                logger.exception("Health check %s failed", check.name)
                issues.append(HealthIssue(
                    check_name=check.name,
                    type="check_failed",
                    severity=IssueSeverity.WARNING,
                    message=f"Health check '{check.name}' failed to run",
                ))
        return issues

    def run(self, details: dict[str, Any] | None = None) -> HealthReport:
        issues = self.run_all_checks()
        return HealthReport(
            status=self._compute_status(issues),
            issues=issues,
            details=details or {},
        )

    def _compute_status(self, issues: list[HealthIssue]) -> HealthStatus:
        """Any error is unhealthy; any warning is degraded; info never degrades."""
        if any(i.severity == IssueSeverity.ERROR for i in issues):
            return HealthStatus.UNHEALTHY
        if any(i.severity == IssueSeverity.WARNING for i in issues):
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY
