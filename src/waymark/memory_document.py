"""In-memory document implementing ``ElementAccessor``.

Used by the test suite and by ``waymark serve --document fixture.json`` to
drive the bridge without a host application. Dependents are modelled
explicitly: deleting an element cascades to every element whose
``depends_on`` contains it, transitively.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .accessor import (
    Anchor,
    DocumentInfo,
    Element,
    FieldNotFound,
    FieldReadOnly,
    Tag,
    TypeMatch,
)

logger = logging.getLogger(__name__)


@dataclass
class _Node:
    name: str
    category: str | None
    fields: dict[str, Any] = field(default_factory=dict)
    read_only: set[str] = field(default_factory=set)
    depends_on: set[int] = field(default_factory=set)
    scope: int | None = None
    tag_targets: tuple[int, ...] | None = None
    elevation: float | None = None


class InMemoryDocument:
    """Dictionary-backed stand-in for a host document."""

    def __init__(
        self,
        title: str = "Untitled",
        *,
        modifiable: bool = True,
        warning_count: int = 0,
    ) -> None:
        self.title = title
        self.modifiable = modifiable
        self.warning_count = warning_count
        self._nodes: dict[int, _Node] = {}
        self._views: set[int] = set()
        self._types: list[TypeMatch] = []
        self._next_id = 1

    # -------------------------------------------------------------------------
    # Building
    # -------------------------------------------------------------------------

    def _allocate(self, element_id: int | None) -> int:
        if element_id is None:
            element_id = self._next_id
        if element_id in self._nodes:
            raise ValueError(f"Element {element_id} already exists")
        self._next_id = max(self._next_id, element_id + 1)
        return element_id

    def add_element(
        self,
        name: str = "",
        category: str | None = None,
        *,
        fields: dict[str, Any] | None = None,
        read_only: tuple[str, ...] | set[str] = (),
        depends_on: tuple[int, ...] | set[int] = (),
        element_id: int | None = None,
    ) -> int:
        """Add an element and return its id."""
        element_id = self._allocate(element_id)
        self._nodes[element_id] = _Node(
            name=name or f"Element {element_id}",
            category=category,
            fields=dict(fields or {}),
            read_only=set(read_only),
            depends_on=set(depends_on),
        )
        return element_id

    def add_view(self, name: str, *, element_id: int | None = None) -> int:
        element_id = self.add_element(name, "Views", element_id=element_id)
        self._views.add(element_id)
        return element_id

    def add_tag(
        self,
        scope: int,
        target_ids: tuple[int, ...] | list[int],
        *,
        element_id: int | None = None,
    ) -> int:
        if scope not in self._views:
            raise ValueError(f"View {scope} does not exist")
        element_id = self.add_element("Tag", "Tags", element_id=element_id)
        node = self._nodes[element_id]
        node.scope = scope
        node.tag_targets = tuple(target_ids)
        return element_id

    def add_anchor(
        self, name: str, elevation: float = 0.0, *, element_id: int | None = None
    ) -> int:
        element_id = self.add_element(name, "Levels", element_id=element_id)
        self._nodes[element_id].elevation = elevation
        return element_id

    def add_type(self, family_name: str, type_name: str, *, type_id: int | None = None) -> int:
        type_id = self.add_element(f"{family_name}: {type_name}", "Types", element_id=type_id)
        self._types.append(TypeMatch(family_name=family_name, type_name=type_name, type_id=type_id))
        return type_id

    def remove_external(self, element_id: int) -> None:
        """Drop one element without cascading, as an unrelated host action would."""
        self._nodes.pop(element_id, None)
        self._views.discard(element_id)
        self._types = [t for t in self._types if t.type_id != element_id]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InMemoryDocument":
        """Build a document from a JSON-shaped fixture."""
        doc = cls(
            title=data.get("title", "Untitled"),
            modifiable=data.get("modifiable", True),
            warning_count=data.get("warning_count", 0),
        )
        for view in data.get("views", []):
            doc.add_view(view.get("name", ""), element_id=view.get("id"))
        for anchor in data.get("anchors", []):
            doc.add_anchor(
                anchor["name"], anchor.get("elevation", 0.0), element_id=anchor.get("id")
            )
        for type_entry in data.get("types", []):
            doc.add_type(
                type_entry["family_name"], type_entry["type_name"], type_id=type_entry.get("id")
            )
        for element in data.get("elements", []):
            doc.add_element(
                element.get("name", ""),
                element.get("category"),
                fields=element.get("fields"),
                read_only=tuple(element.get("read_only", ())),
                depends_on=tuple(element.get("depends_on", ())),
                element_id=element.get("id"),
            )
        for tag in data.get("tags", []):
            doc.add_tag(tag["scope"], tag.get("targets", []), element_id=tag.get("id"))
        return doc

    @classmethod
    def load(cls, path: Path | str) -> "InMemoryDocument":
        with open(path, encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    # -------------------------------------------------------------------------
    # ElementAccessor
    # -------------------------------------------------------------------------

    def exists(self, element_id: int) -> bool:
        return element_id in self._nodes

    def get(self, element_id: int) -> Element | None:
        node = self._nodes.get(element_id)
        if node is None:
            return None
        return Element(
            id=element_id,
            name=node.name,
            category=node.category,
            fields=dict(node.fields),
        )

    def _cascade(self, element_id: int) -> set[int]:
        doomed = {element_id}
        frontier = [element_id]
        while frontier:
            current = frontier.pop()
            for other_id, node in self._nodes.items():
                if other_id not in doomed and current in node.depends_on:
                    doomed.add(other_id)
                    frontier.append(other_id)
        return doomed

    def preview_delete(self, element_id: int) -> set[int]:
        if element_id not in self._nodes:
            return set()
        return self._cascade(element_id)

    def delete_cascade(self, element_id: int) -> set[int]:
        if element_id not in self._nodes:
            return set()
        if not self.modifiable:
            raise RuntimeError("Document is not modifiable")
        removed = self._cascade(element_id)
        for doomed in removed:
            self.remove_external(doomed)
        logger.debug("Deleted %d element(s) starting at %s", len(removed), element_id)
        return removed

    def set_field(self, element_id: int, name: str, value: Any) -> None:
        node = self._nodes.get(element_id)
        if node is None:
            raise KeyError(element_id)
        if not self.modifiable:
            raise RuntimeError("Document is not modifiable")
        if name not in node.fields:
            raise FieldNotFound(name)
        if name in node.read_only:
            raise FieldReadOnly(name)
        node.fields[name] = value

    def is_modifiable(self) -> bool:
        return self.modifiable

    def find_similar_type_names(self, substring: str) -> list[TypeMatch]:
        needle = substring.lower()
        return [
            t for t in self._types
            if needle in t.family_name.lower() or needle in t.type_name.lower()
        ]

    def list_anchors(self) -> list[Anchor]:
        return [
            Anchor(id=element_id, name=node.name, elevation=node.elevation or 0.0)
            for element_id, node in self._nodes.items()
            if node.elevation is not None
        ]

    def list_tags(self, scope: int) -> list[Tag] | None:
        if scope not in self._views:
            return None
        return [
            Tag(id=element_id, target_ids=node.tag_targets or ())
            for element_id, node in self._nodes.items()
            if node.scope == scope
        ]

    def document_info(self) -> DocumentInfo:
        return DocumentInfo(
            title=self.title,
            is_modifiable=self.modifiable,
            warning_count=self.warning_count,
        )
