"""Element accessor: the live document as seen by the ledger engines.

The host application owns the object graph. Everything the ledger,
reconciliation, recovery and rollback code needs from it goes through the
``ElementAccessor`` protocol below; nothing else in waymark touches the
document directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


class FieldNotFound(LookupError):
    """The element has no field with the requested name."""


class FieldReadOnly(Exception):
    """The field exists but the host refuses writes to it."""


@dataclass(frozen=True)
class Element:
    """Snapshot of one element as read from the document."""

    id: int
    name: str = ""
    category: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TypeMatch:
    """One loadable type in the document's type catalog."""

    family_name: str
    type_name: str
    type_id: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "family_name": self.family_name,
            "type_name": self.type_name,
            "type_id": self.type_id,
        }


@dataclass(frozen=True)
class Anchor:
    """A placement anchor (level or reference plane)."""

    id: int
    name: str
    elevation: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "elevation": self.elevation}


@dataclass(frozen=True)
class Tag:
    """A reference-bearing element: it annotates one or more targets."""

    id: int
    target_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class DocumentInfo:
    """Document-level state used by the health check."""

    title: str
    is_modifiable: bool
    warning_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "is_modifiable": self.is_modifiable,
            "warning_count": self.warning_count,
        }


@runtime_checkable
class ElementAccessor(Protocol):
    """Protocol for the host-side object graph."""

    def exists(self, element_id: int) -> bool: ...

    def get(self, element_id: int) -> Element | None: ...

    def delete_cascade(self, element_id: int) -> set[int]:
        """Delete the element and everything that depends on it.

        Returns the ids actually removed.
        """
        ...

    def preview_delete(self, element_id: int) -> set[int]:
        """Dry-run ``delete_cascade`` and roll it back; returns the ids it would remove."""
        ...

    def set_field(self, element_id: int, name: str, value: Any) -> None:
        """Write one field.

        Raises:
            FieldNotFound: The element has no such field.
            FieldReadOnly: The field cannot be written.
        """
        ...

    def is_modifiable(self) -> bool: ...

    def find_similar_type_names(self, substring: str) -> list[TypeMatch]: ...

    def list_anchors(self) -> list[Anchor]: ...

    def list_tags(self, scope: int) -> list[Tag] | None:
        """Tags inside ``scope``, or None when the scope does not exist."""
        ...

    def document_info(self) -> DocumentInfo | None:
        """None when no document is open."""
        ...
