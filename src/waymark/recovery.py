"""Recovery advisor: heuristic diagnosis keyed by error type.

Each strategy is read-only: it inspects the ledger and the document and
returns suggested actions. ``recovered`` means "there is a concrete way
forward", not that anything was repaired.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .accessor import ElementAccessor
from .config import LIMITS
from .errors import ValidationError
from .ledger import OperationLedger

logger = logging.getLogger(__name__)


@dataclass
class RecoveryAction:
    """One diagnostic step and what it found."""

    action: str
    message: str
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action, "message": self.message, **self.extra}


@dataclass
class RecoveryReport:
    error_type: str
    recovered: bool = False
    actions: list[RecoveryAction] = field(default_factory=list)

    @property
    def actions_attempted(self) -> int:
        return len(self.actions)

    @property
    def recommendation(self) -> str:
        if self.recovered:
            return "Recovery suggestions found - review and retry"
        return "Manual intervention may be required"

    def add(self, action: str, message: str, **extra: Any) -> None:
        self.actions.append(RecoveryAction(action, message, extra))

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.error_type,
            "recovered": self.recovered,
            "actions_attempted": self.actions_attempted,
            "actions": [a.to_dict() for a in self.actions],
            "recommendation": self.recommendation,
        }


Strategy = Callable[[RecoveryReport, dict[str, Any]], None]


class RecoveryAdvisor:
    """Maps an error type to a diagnostic strategy."""

    def __init__(
        self,
        ledger: OperationLedger,
        accessor: ElementAccessor,
        *,
        max_alternatives: int = LIMITS.MAX_ALTERNATIVES,
    ) -> None:
        self._ledger = ledger
        self._accessor = accessor
        self._max_alternatives = max_alternatives
        self._strategies: dict[str, Strategy] = {
            "element_not_found": self._element_not_found,
            "transaction_failed": self._transaction_failed,
            "type_not_found": self._type_not_found,
            "placement_failed": self._placement_failed,
        }

    @property
    def error_types(self) -> list[str]:
        return sorted(self._strategies)

    def attempt_recovery(
        self, error_type: str, context: dict[str, Any] | None = None
    ) -> RecoveryReport:
        """Run the strategy registered for ``error_type`` (case-insensitive)."""
        report = RecoveryReport(error_type=error_type)
        strategy = self._strategies.get(error_type.strip().lower())
        if strategy is None:
            report.add(
                "unknown_error",
                f"No specific recovery available for error type: {error_type}",
            )
            return report

        with self._ledger.lock:
            strategy(report, context or {})
        logger.debug(
            "Recovery for %s: recovered=%s actions=%d",
            error_type,
            report.recovered,
            report.actions_attempted,
        )
        return report

    # -------------------------------------------------------------------------
    # Strategies
    # -------------------------------------------------------------------------

    def _element_not_found(self, report: RecoveryReport, context: dict[str, Any]) -> None:
        element_id = context.get("element_id")
        if element_id is None:
            report.add("missing_context", "Provide elementId to search the operation history")
            return

        try:
            element_id = int(element_id)
        except (TypeError, ValueError) as e:
            raise ValidationError(
                "elementId must be an integer", field="element_id", value=element_id
            ) from e

        report.add("check_history", f"Checking operation history for element {element_id}")
        related = self._ledger.find_affecting(element_id)
        if not related:
            report.add("no_history", f"No recorded operation touched element {element_id}")
            return

        last = related[0]
        report.add(
            "found_history",
            f"Element was involved in '{last.kind_name}' operation at {last.timestamp.isoformat()}",
            operation_id=last.id,
            operation_type=last.kind_name,
        )
        if last.kind_name == "delete":
            report.add(
                "explanation",
                "Element was intentionally deleted. If this was a mistake, undo in the host application.",
            )

    def _transaction_failed(self, report: RecoveryReport, context: dict[str, Any]) -> None:
        report.add("check_state", "Checking if the document is in a valid state for modifications")
        if self._accessor.is_modifiable():
            report.add("state_ok", "Document is modifiable. Retry the operation.")
            report.recovered = True
        else:
            report.add(
                "state_locked",
                "Document may be locked or in a modal state. Check for open dialogs in the host application.",
            )

    def _type_not_found(self, report: RecoveryReport, context: dict[str, Any]) -> None:
        family_name = context.get("family_name")
        if not family_name:
            report.add("missing_context", "Provide familyName to search for similar types")
            return

        matches = self._accessor.find_similar_type_names(str(family_name))[: self._max_alternatives]
        if matches:
            report.add(
                "suggest_alternatives",
                f"Found {len(matches)} similar families",
                alternatives=[m.to_dict() for m in matches],
            )
            report.recovered = True
        else:
            report.add(
                "no_alternatives",
                "No similar families found. May need to load the family first.",
            )

    def _placement_failed(self, report: RecoveryReport, context: dict[str, Any]) -> None:
        report.add("check_levels", "Verifying levels exist in the project")
        anchors = self._accessor.list_anchors()
        if not anchors:
            report.add(
                "no_levels",
                "No levels found in project. Create a level first.",
                severity="error",
            )
            return

        report.add(
            "levels_ok",
            f"Found {len(anchors)} levels. Try specifying levelId parameter.",
            levels=[a.to_dict() for a in anchors],
        )
        report.recovered = True
