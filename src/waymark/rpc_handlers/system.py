"""Connection and health commands."""

from __future__ import annotations

from typing import Any

from waymark import __version__
from waymark.rpc.router import methods
from waymark.rpc.schemas import EmptyParams
from waymark.session import BridgeSession

from ._base import command


@command("initialize", EmptyParams)
def handle_initialize(session: BridgeSession, params: EmptyParams) -> dict[str, Any]:
    """Return protocol info and the command list."""
    return {
        "protocol_version": "jsonrpc-2.0",
        "server_info": {"name": "waymark", "version": __version__},
        "methods": methods(),
    }


@command("ping", EmptyParams)
def handle_ping(session: BridgeSession, params: EmptyParams) -> dict[str, Any]:
    return {"ok": True}


@command("healthCheck", EmptyParams)
def handle_health_check(session: BridgeSession, params: EmptyParams) -> dict[str, Any]:
    return session.health_report().to_dict()
