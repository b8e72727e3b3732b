"""Data models for the model-diagram pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Iterator, Union


class Direction(enum.Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    @property
    def flipped(self) -> Direction:
        if self is Direction.HORIZONTAL:
            return Direction.VERTICAL
        return Direction.HORIZONTAL


class TypeKind(enum.Enum):
    """Syntactic shape of a field's type expression."""
    ARRAY = "array"
    GENERIC = "generic"
    NAME = "name"
    OTHER = "other"


class LayoutState(enum.Enum):
    IDLE = "idle"
    LAYOUT_PENDING = "layout_pending"
    LAYOUT_IN_FLIGHT = "layout_in_flight"


# ── Parser stage ──────────────────────────────────────────────


@dataclass
class RawField:
    """One property of a declaration, before name resolution."""
    name: str
    type_text: str
    kind: TypeKind = TypeKind.OTHER
    element_type: str | None = None  # ARRAY: element type text
    reference_name: str | None = None  # GENERIC: e.g. "Map"
    arguments: list[str] = field(default_factory=list)  # GENERIC: argument texts


@dataclass
class RawDeclaration:
    """Result from the parser stage."""
    name: str
    raw_fields: list[RawField] = field(default_factory=list)
    line_number: int = 0


# ── Graph stage ───────────────────────────────────────────────


@dataclass(eq=False)
class Model:
    """A top-level declaration as a node of the dependency graph.

    Models reference each other (and themselves), so equality is identity
    and ``repr`` only shows ids. Use ``to_dict`` for structural comparison.
    """
    id: str
    name: str
    schema: list[SchemaField] = field(default_factory=list)
    dependencies: list[Model] = field(default_factory=list)
    dependants: list[Model] = field(default_factory=list)

    def __repr__(self) -> str:
        return (
            f"Model(id={self.id!r}, fields={[f.name for f in self.schema]}, "
            f"dependencies={self.dependency_ids}, dependants={self.dependant_ids})"
        )

    @property
    def dependency_ids(self) -> list[str]:
        return [m.id for m in self.dependencies]

    @property
    def dependant_ids(self) -> list[str]:
        return [m.id for m in self.dependants]

    def topology_hash(self) -> tuple[str, str]:
        """``(dependants_hash, dependencies_hash)`` from the ordered ids."""
        return ":".join(self.dependant_ids), ":".join(self.dependency_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "schema": [f.to_dict() for f in self.schema],
            "dependencies": self.dependency_ids,
            "dependants": self.dependant_ids,
        }


def _render_type(value: str | Model) -> str | dict[str, str]:
    if isinstance(value, Model):
        return {"model": value.id}
    return value


@dataclass
class PrimitiveField:
    name: str
    type: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type}


@dataclass
class ArrayField:
    name: str
    element_type: str | Model
    type: str = field(default="array", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "elementType": _render_type(self.element_type),
        }


@dataclass
class ReferenceField:
    """A generic type expression such as ``Map<K, V>``."""
    name: str
    reference_name: str
    arguments: list[str | Model] = field(default_factory=list)
    type: str = field(default="reference", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "referenceName": self.reference_name,
            "arguments": [_render_type(a) for a in self.arguments],
        }


@dataclass
class ModelField:
    """A field whose whole type is another declared model."""
    name: str
    type: Model

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": _render_type(self.type)}


SchemaField = Union[PrimitiveField, ArrayField, ReferenceField, ModelField]


def is_array_field(f: SchemaField) -> bool:
    return isinstance(f, ArrayField)


def is_reference_field(f: SchemaField) -> bool:
    return isinstance(f, ReferenceField)


def referenced_models(f: SchemaField) -> Iterator[Model]:
    """Yield every Model a field resolves to, in encounter order."""
    if isinstance(f, ModelField):
        yield f.type
    elif isinstance(f, ArrayField):
        if isinstance(f.element_type, Model):
            yield f.element_type
    elif isinstance(f, ReferenceField):
        for argument in f.arguments:
            if isinstance(argument, Model):
                yield argument


# ── View state ────────────────────────────────────────────────


@dataclass
class Position:
    x: float = -1
    y: float = -1


@dataclass
class Size:
    width: float
    height: float


@dataclass
class Node:
    """A diagram node. ``id`` is the id of the Model it renders."""
    id: str
    model: Model
    type: str = "model"
    position: Position = field(default_factory=Position)
    size: Size | None = None

    @property
    def measured(self) -> bool:
        return self.size is not None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "position": {"x": self.position.x, "y": self.position.y},
            "model": self.model.to_dict(),
        }
        if self.size:
            result["width"] = self.size.width
            result["height"] = self.size.height
        return result


@dataclass
class Edge:
    id: str
    source: str
    target: str
    source_handle: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result = {"id": self.id, "source": self.source, "target": self.target}
        if self.source_handle:
            result["sourceHandle"] = self.source_handle
        return result


@dataclass
class NodeMetrics:
    """Cached visual state of a node, keyed by node id."""
    position: Position
    size: Size | None = None

    @classmethod
    def of(cls, node: Node) -> NodeMetrics:
        size = Size(node.size.width, node.size.height) if node.size else None
        return cls(position=Position(node.position.x, node.position.y), size=size)


@dataclass
class LayoutResult:
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
