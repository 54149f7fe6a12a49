from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta

import pytest

from waymark.ledger import OperationLedger
from waymark.memory_document import InMemoryDocument
from waymark.session import BridgeSession


def ticking_clock(start: datetime | None = None) -> Callable[[], datetime]:
    """Clock that advances one second per call."""
    current = start or datetime(2026, 1, 1, tzinfo=UTC)

    def _tick() -> datetime:
        nonlocal current
        current += timedelta(seconds=1)
        return current

    return _tick


@pytest.fixture
def document() -> InMemoryDocument:
    """Small document: one view, two levels, a door catalog, a few elements."""
    doc = InMemoryDocument("Test Project")
    doc.add_view("Level 1 Plan", element_id=100)
    doc.add_anchor("Level 1", 0.0, element_id=200)
    doc.add_anchor("Level 2", 10.0, element_id=201)
    doc.add_type("Door-36in", "Single", type_id=300)
    doc.add_type("Door-Double", "72in", type_id=301)
    doc.add_type("Window-Fixed", "24x36", type_id=302)
    return doc


@pytest.fixture
def ledger() -> OperationLedger:
    return OperationLedger(capacity=50, clock=ticking_clock())


@pytest.fixture
def session(document: InMemoryDocument, ledger: OperationLedger) -> Iterator[BridgeSession]:
    yield BridgeSession(accessor=document, ledger=ledger)
