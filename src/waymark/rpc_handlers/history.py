"""Operation history commands."""

from __future__ import annotations

from typing import Any

from waymark.errors import NotFoundError
from waymark.ledger import make_kind
from waymark.rpc.schemas import (
    EmptyParams,
    GetOperationParams,
    HistoryParams,
    RecordOperationParams,
)
from waymark.session import BridgeSession

from ._base import command


@command("recordOperation", RecordOperationParams)
def handle_record_operation(session: BridgeSession, params: RecordOperationParams) -> dict[str, Any]:
    kind = make_kind(params.operation_type, params.affected_element_ids, params.original_state)
    record = session.record(kind, params.parameters)
    return {
        "operation_id": record.id,
        "recorded": True,
        "can_rollback": record.rollback_eligible,
        "history_size": len(session.ledger),
    }


@command("getOperationHistory", HistoryParams)
def handle_get_operation_history(session: BridgeSession, params: HistoryParams) -> dict[str, Any]:
    return session.ledger.history(params.limit).to_dict()


@command("getOperation", GetOperationParams)
def handle_get_operation(session: BridgeSession, params: GetOperationParams) -> dict[str, Any]:
    record = session.ledger.get(params.operation_id)
    if record is None:
        raise NotFoundError(
            f"No operation {params.operation_id} in history",
            resource_type="operation",
            resource_id=params.operation_id,
        )
    return {"operation": record.to_dict()}


@command("clearOperationHistory", EmptyParams)
def handle_clear_operation_history(session: BridgeSession, params: EmptyParams) -> dict[str, Any]:
    return {"cleared_count": session.ledger.clear()}
