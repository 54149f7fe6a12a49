"""Bridge session: one ledger bound to one document.

Handlers receive a session instead of reaching for module-level state, so
several independent ledgers can coexist (one per session, one per test).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .accessor import ElementAccessor
from .config import LIMITS
from .health import (
    DocumentStateCheck,
    HealthCheckRunner,
    HealthReport,
    LedgerCapacityCheck,
    OrphanedOperationsCheck,
)
from .ledger import OperationKind, OperationLedger, OperationRecord
from .reconciliation import ReconciliationEngine
from .recovery import RecoveryAdvisor
from .rollback import RollbackController


@dataclass
class BridgeSession:
    accessor: ElementAccessor
    ledger: OperationLedger = field(default_factory=OperationLedger)

    def __post_init__(self) -> None:
        self.reconciliation = ReconciliationEngine(self.ledger, self.accessor)
        self.recovery = RecoveryAdvisor(self.ledger, self.accessor)
        self.rollback = RollbackController(self.ledger, self.accessor)
        self.health = HealthCheckRunner()
        self.health.register(DocumentStateCheck(self.accessor))
        self.health.register(LedgerCapacityCheck(self.ledger))
        self.health.register(OrphanedOperationsCheck(self.ledger, self.accessor))

    @classmethod
    def create(cls, accessor: ElementAccessor, capacity: int = LIMITS.HISTORY_SIZE) -> "BridgeSession":
        return cls(accessor=accessor, ledger=OperationLedger(capacity))

    def record(self, kind: OperationKind, parameters: dict[str, Any] | None = None) -> OperationRecord:
        return self.ledger.record(kind, parameters)

    def health_report(self) -> HealthReport:
        info = self.accessor.document_info()
        details = {
            "document": info.to_dict() if info is not None else None,
            "operation_history": {
                "count": len(self.ledger),
                "max_size": self.ledger.capacity,
            },
        }
        return self.health.run(details)
