"""Parser registry: source text -> declarations -> Model graph."""

from __future__ import annotations

from model_diagram.models import Model
from model_diagram.parser.field_classifier import FieldClassifier
from model_diagram.parser.graph_builder import GraphBuilder
from model_diagram.parser.schema_parser import SchemaParser

_parser: SchemaParser | None = None
_builder = GraphBuilder()


def parse_models(source: str) -> list[Model]:
    """Parse source text into a freshly built Model graph."""
    global _parser
    if _parser is None:
        _parser = SchemaParser()
    return _builder.build(_parser.parse(source))


__all__ = [
    "FieldClassifier",
    "GraphBuilder",
    "SchemaParser",
    "parse_models",
]
