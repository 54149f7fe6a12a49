"""Base utilities for command handlers.

Every command returns a result object; nothing raised inside a handler
crosses the boundary. ``command`` validates params with the handler's
pydantic model, runs the handler and converts failures:

1. Schema failures become ``validation`` errors
2. WaymarkError subclasses become their structured form
3. Anything else is logged and reported as an internal error
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import wraps
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as SchemaError

from waymark.errors import ValidationError, WaymarkError, error_response
from waymark.rpc.router import register
from waymark.rpc.schemas import CommandParams, EmptyParams

if TYPE_CHECKING:
    from waymark.session import BridgeSession

logger = logging.getLogger(__name__)


def _from_schema_error(exc: SchemaError) -> ValidationError:
    problems = [
        {
            "field": ".".join(str(part) for part in err["loc"]) or None,
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    first = problems[0] if problems else {"field": None, "message": "invalid params"}
    label = first["field"] or "params"
    return ValidationError(
        f"Invalid parameter {label}: {first['message']}",
        field=first["field"],
        context={"problems": problems},
    )


def command(
    method_name: str,
    params_model: type[CommandParams] = EmptyParams,
) -> Callable:
    """Register a handler under ``method_name`` and wrap it in the result envelope.

    Usage:
        @command("safeDeleteElement", SafeDeleteParams)
        def handle_safe_delete(session: BridgeSession, params: SafeDeleteParams) -> dict:
            return session.rollback.safe_delete(params.element_id, params.force).to_dict()
    """

    def decorator(func: Callable[..., dict[str, Any]]) -> Callable[..., dict[str, Any]]:
        @wraps(func)
        def wrapper(session: "BridgeSession", params: dict[str, Any] | None = None) -> dict[str, Any]:
            try:
                parsed = params_model.model_validate(params or {})
                payload = func(session, parsed)
            except SchemaError as e:
                return error_response(_from_schema_error(e)).to_dict()
            except WaymarkError as e:
                logger.info("Command %s failed: %s", method_name, e.message)
                return error_response(e).to_dict()
            except Exception as e:
                logger.error(
                    "Internal error in command %s: %s",
                    method_name,
                    e,
                    exc_info=True,
                )
                return error_response(WaymarkError(
                    f"Internal error in {method_name}",
                    context={"error_type": type(e).__name__},
                )).to_dict()
            return {"success": True, **payload}

        register(method_name)(wrapper)
        return wrapper

    return decorator
