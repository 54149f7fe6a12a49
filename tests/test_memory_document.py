"""Tests for the in-memory document used to drive the bridge.

Run with: pytest tests/test_memory_document.py -v
"""

from __future__ import annotations

from pathlib import Path

import pytest

from waymark.accessor import ElementAccessor, FieldNotFound, FieldReadOnly
from waymark.memory_document import InMemoryDocument

FIXTURE = Path(__file__).parent / "fixtures" / "sample_document.json"


def test_satisfies_accessor_protocol(document: InMemoryDocument):
    assert isinstance(document, ElementAccessor)


def test_load_fixture():
    doc = InMemoryDocument.load(FIXTURE)

    assert doc.document_info().title == "Sample Office"
    assert doc.document_info().warning_count == 3
    assert [a.name for a in doc.list_anchors()] == ["Level 1", "Level 2"]
    assert doc.get(41).fields == {"Mark": "D1", "Width": 36}
    assert [t.id for t in doc.list_tags(10)] == [50, 51]
    assert doc.list_tags(40) is None


def test_cascade_is_transitive(document: InMemoryDocument):
    wall = document.add_element("Wall")
    door = document.add_element("Door", depends_on=(wall,))
    tag = document.add_element("Door Tag", depends_on=(door,))
    other = document.add_element("Other")

    assert document.preview_delete(wall) == {wall, door, tag}
    assert document.exists(door)

    assert document.delete_cascade(wall) == {wall, door, tag}
    assert not document.exists(tag)
    assert document.exists(other)


def test_delete_missing_element_is_noop(document: InMemoryDocument):
    assert document.delete_cascade(424242) == set()
    assert document.preview_delete(424242) == set()


def test_locked_document_refuses_writes(document: InMemoryDocument):
    note = document.add_element("Note", fields={"text": "a"})
    document.modifiable = False

    with pytest.raises(RuntimeError):
        document.set_field(note, "text", "b")
    with pytest.raises(RuntimeError):
        document.delete_cascade(note)


def test_set_field_errors(document: InMemoryDocument):
    door = document.add_element("Door", fields={"Width": 36}, read_only=("Width",))

    with pytest.raises(FieldNotFound):
        document.set_field(door, "Height", 80)
    with pytest.raises(FieldReadOnly):
        document.set_field(door, "Width", 42)
    with pytest.raises(KeyError):
        document.set_field(424242, "Width", 42)


def test_get_returns_a_copy(document: InMemoryDocument):
    note = document.add_element("Note", fields={"text": "a"})

    document.get(note).fields["text"] = "mutated"

    assert document.get(note).fields["text"] == "a"


def test_duplicate_ids_rejected(document: InMemoryDocument):
    with pytest.raises(ValueError):
        document.add_element("Again", element_id=100)


def test_tag_requires_known_view(document: InMemoryDocument):
    with pytest.raises(ValueError):
        document.add_tag(424242, [1])


def test_similar_type_names_match_family_or_type(document: InMemoryDocument):
    assert [t.type_id for t in document.find_similar_type_names("door")] == [300, 301]
    assert [t.type_id for t in document.find_similar_type_names("24X36")] == [302]
    assert document.find_similar_type_names("stair") == []


def test_remove_external_drops_type(document: InMemoryDocument):
    document.remove_external(300)

    assert not document.exists(300)
    assert [t.type_id for t in document.find_similar_type_names("door")] == [301]
