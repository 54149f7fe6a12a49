"""Command handlers for the JSON-RPC server.

Importing this package registers every command with the router:
- history: recordOperation, getOperationHistory, getOperation, clearOperationHistory
- diagnostics: detectAnomalies, attemptRecovery
- rollback: undoLastOperation, safeDeleteElement, safeModifyElement
- system: initialize, ping, healthCheck
"""

from __future__ import annotations

from waymark.rpc_handlers import diagnostics, history, rollback, system

__all__ = ["diagnostics", "history", "rollback", "system"]
