"""Undo and guarded mutation commands."""

from __future__ import annotations

from typing import Any

from waymark.rpc.schemas import SafeDeleteParams, SafeModifyParams, UndoParams
from waymark.session import BridgeSession

from ._base import command


@command("undoLastOperation", UndoParams)
def handle_undo_last_operation(session: BridgeSession, params: UndoParams) -> dict[str, Any]:
    return session.rollback.undo_last_operation(params.operation_id).to_dict()


@command("safeDeleteElement", SafeDeleteParams)
def handle_safe_delete_element(session: BridgeSession, params: SafeDeleteParams) -> dict[str, Any]:
    return session.rollback.safe_delete(params.element_id, force=params.force).to_dict()


@command("safeModifyElement", SafeModifyParams)
def handle_safe_modify_element(session: BridgeSession, params: SafeModifyParams) -> dict[str, Any]:
    # "success" in the payload reflects whether the write (and verification) held
    return session.rollback.safe_modify(
        params.element_id,
        params.modifications,
        verify=params.verify,
        max_retries=params.max_retries,
    ).to_dict()
