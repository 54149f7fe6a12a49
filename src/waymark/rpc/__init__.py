"""RPC module for waymark.

Transport errors, the method registry and typed request schemas.
"""

from __future__ import annotations

from waymark.rpc.types import JSON, ErrorCode, RpcError

__all__ = ["JSON", "ErrorCode", "RpcError"]
