"""Waymark: operation ledger, reconciliation and recovery for document automation.

An external controller mutates a host-owned document through commands that
cannot be grouped into transactions. Waymark keeps the bookkeeping those
commands lack: what was done, whether the document still agrees, and what
can be undone.
"""

from __future__ import annotations

__version__ = "0.1.0"
