"""Derive diagram nodes and edges from a Model graph."""

from __future__ import annotations

from model_diagram.layout.engine import port_id
from model_diagram.models import ArrayField, Edge, Model, ModelField, Node, ReferenceField


def extract_model_nodes(models: list[Model]) -> list[Node]:
    """One unmeasured, off-screen node per model."""
    return [Node(id=model.id, model=model) for model in models]


def extract_model_edges(models: list[Model]) -> list[Edge]:
    """One edge per resolved model reference, in field-then-argument order.

    Edge ids carry a running counter so they stay unique when a field
    references the same model more than once.
    """
    result: list[Edge] = []
    count = 1

    for model in models:
        for f in model.schema:
            handle = port_id(model.id, f.name)

            if isinstance(f, ModelField):
                result.append(Edge(
                    id=f"{count}-{model.id}-{f.name}",
                    source=model.id,
                    target=f.type.id,
                    source_handle=handle,
                ))
                count += 1

            elif isinstance(f, ArrayField) and isinstance(f.element_type, Model):
                result.append(Edge(
                    id=f"{count}-{model.id}-{f.name}",
                    source=model.id,
                    target=f.element_type.id,
                    source_handle=handle,
                ))
                count += 1

            elif isinstance(f, ReferenceField):
                for argument in f.arguments:
                    if not isinstance(argument, Model):
                        continue
                    result.append(Edge(
                        id=f"{count}-{model.id}-{f.name}-{argument.id}",
                        source=model.id,
                        target=argument.id,
                        source_handle=handle,
                    ))
                    count += 1

    return result
