"""Centralized limits for the operation ledger and its engines.

This module provides a single source of truth for:
- Ledger capacity and history paging
- Reconciliation window size
- Recovery suggestion limits
- Health check thresholds

Values can be overridden via environment variables. Each has a hard
minimum so a bad environment cannot produce a ledger that holds nothing.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_int(name: str, default: int, min_val: int | None = None) -> int:
    """Get integer from environment with optional minimum enforcement."""
    val = int(os.environ.get(name, str(default)))
    if min_val is not None and val < min_val:
        return min_val
    return val


@dataclass(frozen=True)
class LedgerLimits:
    """Sizing for the operation ledger and the scans that read it."""

    # Maximum records held before the oldest is evicted
    HISTORY_SIZE: int = _env_int("WAYMARK_HISTORY_SIZE", 50, min_val=1)

    # Default page size for getOperationHistory
    HISTORY_DEFAULT_LIMIT: int = _env_int("WAYMARK_HISTORY_DEFAULT_LIMIT", 10, min_val=1)

    # How many of the newest create/delete records reconciliation inspects
    RECONCILE_WINDOW: int = _env_int("WAYMARK_RECONCILE_WINDOW", 10, min_val=1)

    # Upper bound on type-name alternatives returned by recovery
    MAX_ALTERNATIVES: int = _env_int("WAYMARK_MAX_ALTERNATIVES", 5, min_val=1)

    # Document warning count above which health reports an info issue
    WARNING_THRESHOLD: int = _env_int("WAYMARK_WARNING_THRESHOLD", 10, min_val=0)


LIMITS = LedgerLimits()
