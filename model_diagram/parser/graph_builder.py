"""Dependency graph builder: two-pass Model construction with mirrored adjacency."""

from __future__ import annotations

from model_diagram.models import Model, RawDeclaration, referenced_models
from model_diagram.parser.field_classifier import FieldClassifier


class GraphBuilder:
    """Build Model entities from parsed declarations.

    Forward and circular references resolve because every declared name
    gets a placeholder before any field is classified.
    """

    def __init__(self, classifier: FieldClassifier | None = None):
        self.classifier = classifier or FieldClassifier()

    def build(self, declarations: list[RawDeclaration]) -> list[Model]:
        # Step 1: one placeholder per declaration, indexed by name
        index: dict[str, Model] = {}
        models: list[Model] = []
        for declaration in declarations:
            model = Model(id=declaration.name, name=declaration.name)
            index[declaration.name] = model
            models.append(model)

        # Step 2: classify fields against the index and wire adjacency
        for declaration, model in zip(declarations, models):
            for raw in declaration.raw_fields:
                schema_field = self.classifier.classify(raw, index)
                model.schema.append(schema_field)
                for target in referenced_models(schema_field):
                    self._add_edge(model, target)

        return models

    @staticmethod
    def _add_edge(source: Model, target: Model) -> None:
        # No deduplication: Map<A, A> records A twice
        source.dependencies.append(target)
        target.dependants.append(source)
