"""Reconciliation and recovery commands."""

from __future__ import annotations

from typing import Any

from waymark.rpc.schemas import AttemptRecoveryParams, DetectAnomaliesParams
from waymark.session import BridgeSession

from ._base import command


@command("detectAnomalies", DetectAnomaliesParams)
def handle_detect_anomalies(session: BridgeSession, params: DetectAnomaliesParams) -> dict[str, Any]:
    checks = set(params.checks) if params.checks is not None else None
    return session.reconciliation.detect_anomalies(scope=params.scope, checks=checks).to_dict()


@command("attemptRecovery", AttemptRecoveryParams)
def handle_attempt_recovery(session: BridgeSession, params: AttemptRecoveryParams) -> dict[str, Any]:
    context = params.context.model_dump(exclude_none=True)
    return session.recovery.attempt_recovery(params.error_type, context).to_dict()
