"""JSON-RPC 2.0 server over stdio.

One request per line on stdin, one response per line on stdout. Requests
are handled strictly one at a time; the host document is not safe for
concurrent access.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from typing import Any, TextIO

from waymark import rpc_handlers  # noqa: F401  (registers commands)
from waymark.rpc import JSON, ErrorCode, RpcError
from waymark.rpc.router import get_handler
from waymark.session import BridgeSession

logger = logging.getLogger(__name__)


def _reply(request_id: str | int | None, result: Any) -> JSON:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _error_reply(request_id: str | int | None, error: RpcError) -> JSON:
    return {"jsonrpc": "2.0", "id": request_id, "error": error.to_dict()}


def handle_request(session: BridgeSession, req: JSON) -> JSON | None:
    """Dispatch one decoded request; None for notifications."""
    method = req.get("method")
    req_id = req.get("id")
    params = req.get("params")

    # Correlation id for request tracing
    correlation_id = uuid.uuid4().hex[:12]
    if method not in ("ping", "initialize"):
        logger.debug("RPC request [%s] method=%s req_id=%s", correlation_id, method, req_id)

    try:
        if not isinstance(method, str) or not method:
            raise RpcError(ErrorCode.INVALID_REQUEST, "method is required")

        handler = get_handler(method)
        if handler is None:
            raise RpcError(ErrorCode.METHOD_NOT_FOUND, f"Method not found: {method}")

        if params is not None and not isinstance(params, dict):
            raise RpcError(ErrorCode.INVALID_PARAMS, "params must be an object")

        result = handler(session, params)
    except RpcError as e:
        logger.debug("RPC error [%s] %s: %s", correlation_id, method, e.message)
        if req_id is None:
            return None
        return _error_reply(req_id, e)

    # Notifications can omit id; executed but never answered.
    if req_id is None:
        return None
    return _reply(req_id, result)


def handle_line(session: BridgeSession, line: str) -> JSON | None:
    """Decode one line and dispatch it."""
    try:
        req = json.loads(line)
    except json.JSONDecodeError as e:
        return _error_reply(None, RpcError(ErrorCode.PARSE_ERROR, f"Parse error: {e.msg}"))

    if not isinstance(req, dict):
        return _error_reply(None, RpcError(ErrorCode.INVALID_REQUEST, "request must be an object"))

    return handle_request(session, req)


def run_stdio_server(
    session: BridgeSession,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> None:
    """Serve requests until EOF or until the client goes away."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    logger.info("waymark server ready (ledger capacity %d)", session.ledger.capacity)

    for raw in stdin:
        line = raw.strip()
        if not line:
            continue

        resp = handle_line(session, line)
        if resp is None:
            continue
        try:
            stdout.write(json.dumps(resp, default=str) + "\n")
            stdout.flush()
        except BrokenPipeError:
            logger.info("client disconnected")
            return

    logger.info("stdin closed, shutting down")
