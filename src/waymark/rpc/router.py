"""Method registry for the JSON-RPC server.

Handlers register themselves by method name at import time::

    @register("ping")
    def handle_ping(session, params): ...
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

Handler = Callable[..., dict[str, Any]]

_METHODS: dict[str, Handler] = {}


def register(method: str) -> Callable[[Handler], Handler]:
    """Register ``func`` under ``method``; duplicate names are a programming error."""

    def decorator(func: Handler) -> Handler:
        if method in _METHODS:
            raise ValueError(f"RPC method already registered: {method}")
        _METHODS[method] = func
        return func

    return decorator


def get_handler(method: str) -> Handler | None:
    return _METHODS.get(method)


def methods() -> list[str]:
    return sorted(_METHODS)
