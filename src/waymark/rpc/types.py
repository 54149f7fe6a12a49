"""Transport-level JSON-RPC 2.0 errors.

Domain failures never use these: they travel as ``{"success": false}``
command results. Only problems with the request itself (bad JSON, unknown
method, params of the wrong shape) become JSON-RPC error objects.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any

# JSON object as decoded from or encoded to the wire
JSON = dict[str, Any]


class ErrorCode(IntEnum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602


class RpcError(Exception):
    """A request the server refuses before any command runs."""

    def __init__(self, code: ErrorCode, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> JSON:
        result: JSON = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result
