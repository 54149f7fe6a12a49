"""Tests for guarded delete and verified modify.

Run with: pytest tests/test_safe_operations.py -v
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any
from unittest.mock import patch

import pytest

from waymark.accessor import Element
from waymark.errors import (
    DependencyConflictError,
    ExternalMutationFailure,
    NotFoundError,
    ValidationError,
)
from waymark.ledger import Delete, Modify, OperationLedger
from waymark.memory_document import InMemoryDocument
from waymark.rollback import RollbackController


class LaggingDocument(InMemoryDocument):
    """Document whose reads only reflect writes from the Nth read on."""

    def __init__(self, visible_on_read: int) -> None:
        super().__init__("Lagging")
        self.visible_on_read = visible_on_read
        self.reads = 0
        self._stale: dict[str, Any] | None = None

    def set_field(self, element_id: int, name: str, value: Any) -> None:
        if self._stale is None:
            self._stale = dict(self._nodes[element_id].fields)
        super().set_field(element_id, name, value)

    def get(self, element_id: int) -> Element | None:
        element = super().get(element_id)
        self.reads += 1
        if element is None or self._stale is None or self.reads >= self.visible_on_read:
            return element
        return replace(element, fields=dict(self._stale))


@pytest.fixture
def controller(ledger: OperationLedger, document: InMemoryDocument) -> RollbackController:
    return RollbackController(ledger, document)


# =============================================================================
# safe_delete
# =============================================================================


def test_safe_delete_without_dependents(
    controller: RollbackController, ledger: OperationLedger, document: InMemoryDocument
):
    wall = document.add_element("Basic Wall", "Walls")

    result = controller.safe_delete(wall)

    assert not document.exists(wall)
    assert result.deleted_ids == [wall]
    assert result.message == "Element deleted successfully"
    record = ledger.get(result.record_id)
    assert isinstance(record.kind, Delete)
    assert record.rollback_eligible is False


def test_safe_delete_rejects_dependents_without_force(
    controller: RollbackController, ledger: OperationLedger, document: InMemoryDocument
):
    wall = document.add_element("Basic Wall", "Walls")
    document.add_element("Door 1", "Doors", depends_on=(wall,))
    document.add_element("Window 1", "Windows", depends_on=(wall,))

    with pytest.raises(DependencyConflictError) as exc_info:
        controller.safe_delete(wall)

    err = exc_info.value
    assert err.context["dependent_count"] == 2
    assert sorted(err.dependents) == ["Door 1", "Window 1"]
    assert err.context["element_name"] == "Basic Wall"
    assert err.recoverable is True
    assert document.exists(wall)
    assert len(ledger) == 0


def test_safe_delete_with_force_removes_cascade(
    controller: RollbackController, ledger: OperationLedger, document: InMemoryDocument
):
    wall = document.add_element("Basic Wall", "Walls")
    door = document.add_element("Door 1", "Doors", depends_on=(wall,))

    result = controller.safe_delete(wall, force=True)

    assert result.deleted_ids == sorted([wall, door])
    assert result.total_deleted == 2
    assert result.message == "Deleted element and 1 dependent(s)"
    assert ledger.get(result.record_id).affected_ids == tuple(sorted([wall, door]))


def test_safe_delete_missing_element(controller: RollbackController, ledger: OperationLedger):
    with pytest.raises(NotFoundError):
        controller.safe_delete(424242)
    assert len(ledger) == 0


def test_safe_delete_proceeds_when_preview_fails(
    controller: RollbackController, document: InMemoryDocument
):
    wall = document.add_element("Basic Wall", "Walls")

    with patch.object(document, "preview_delete", side_effect=RuntimeError("no preview")):
        result = controller.safe_delete(wall)

    assert result.deleted_ids == [wall]


def test_safe_delete_write_failure_is_not_recorded(
    controller: RollbackController, ledger: OperationLedger, document: InMemoryDocument
):
    wall = document.add_element("Basic Wall", "Walls")
    document.modifiable = False

    with pytest.raises(ExternalMutationFailure):
        controller.safe_delete(wall)
    assert len(ledger) == 0


# =============================================================================
# safe_modify
# =============================================================================


def test_safe_modify_succeeds_first_attempt(
    controller: RollbackController, ledger: OperationLedger, document: InMemoryDocument
):
    note = document.add_element("Note", "Text Notes", fields={"text": "old"})

    result = controller.safe_modify(note, {"text": "New label"})

    assert result.success is True
    assert result.verified is True
    assert result.attempts == 1
    assert document.get(note).fields["text"] == "New label"
    record = ledger.get(result.record_id)
    assert isinstance(record.kind, Modify)
    assert record.rollback_eligible is False
    assert record.parameters["fields"] == {"text": "New label"}


def test_safe_modify_retries_until_write_is_visible(ledger: OperationLedger):
    doc = LaggingDocument(visible_on_read=3)
    note = doc.add_element("Note", fields={"text": "old"})
    controller = RollbackController(ledger, doc)

    result = controller.safe_modify(note, {"text": "X"}, verify=True, max_retries=2)

    assert result.success is True
    assert result.attempts == 3
    assert len(ledger) == 1
    retries = [r for r in result.results if r.get("status") == "verification_failed"]
    assert [r["attempt"] for r in retries] == [1, 2]


def test_safe_modify_gives_up_after_retries(ledger: OperationLedger):
    doc = LaggingDocument(visible_on_read=10)
    note = doc.add_element("Note", fields={"text": "old"})
    controller = RollbackController(ledger, doc)

    result = controller.safe_modify(note, {"text": "X"}, max_retries=1)

    assert result.success is False
    assert result.verified is False
    assert result.attempts == 2
    assert result.modifications_succeeded == 1
    assert len(ledger) == 1


def test_safe_modify_without_verify_runs_once(ledger: OperationLedger):
    doc = LaggingDocument(visible_on_read=10)
    note = doc.add_element("Note", fields={"text": "old"})
    controller = RollbackController(ledger, doc)

    result = controller.safe_modify(note, {"text": "X"}, verify=False, max_retries=3)

    assert result.success is True
    assert result.attempts == 1
    assert doc.reads == 0


def test_safe_modify_verification_is_case_insensitive_containment(
    controller: RollbackController, document: InMemoryDocument
):
    note = document.add_element("Note", fields={"text": "old"})

    with patch.object(
        document,
        "get",
        return_value=Element(id=note, name="Note", fields={"text": "ROOM 101 - LOBBY"}),
    ):
        result = controller.safe_modify(note, {"text": "room 101"})

    assert result.verified is True


def test_safe_modify_reports_skipped_fields(
    controller: RollbackController, ledger: OperationLedger, document: InMemoryDocument
):
    door = document.add_element(
        "Door", fields={"Mark": "D1", "Width": 36}, read_only=("Width",)
    )

    result = controller.safe_modify(door, {"Width": 42, "Fire Rating": "60 min"})

    assert result.success is False
    assert result.attempts == 1
    assert result.modifications_succeeded == 0
    assert {r["parameter"]: r["reason"] for r in result.results} == {
        "Width": "Read-only",
        "Fire Rating": "Parameter not found",
    }
    assert len(ledger) == 1


def test_safe_modify_mixed_fields(controller: RollbackController, document: InMemoryDocument):
    door = document.add_element("Door", fields={"Mark": "D1", "Width": 36}, read_only=("Width",))

    result = controller.safe_modify(door, {"Mark": "D7", "Width": 42})

    assert result.success is True
    assert result.modifications_attempted == 2
    assert result.modifications_succeeded == 1


def test_safe_modify_missing_element(controller: RollbackController, ledger: OperationLedger):
    with pytest.raises(NotFoundError):
        controller.safe_modify(424242, {"text": "X"})
    assert len(ledger) == 0


def test_safe_modify_validates_arguments(controller: RollbackController, document: InMemoryDocument):
    note = document.add_element("Note", fields={"text": "old"})

    with pytest.raises(ValidationError):
        controller.safe_modify(note, {})
    with pytest.raises(ValidationError):
        controller.safe_modify(note, {"text": "X"}, max_retries=-1)


def test_safe_modify_write_failure_is_not_recorded(
    controller: RollbackController, ledger: OperationLedger, document: InMemoryDocument
):
    note = document.add_element("Note", fields={"text": "old"})
    document.modifiable = False

    with pytest.raises(ExternalMutationFailure) as exc_info:
        controller.safe_modify(note, {"text": "X"})

    assert exc_info.value.context["operation"] == "safe_modify"
    assert len(ledger) == 0
