"""Resolve a raw field's type expression against the declared models."""

from __future__ import annotations

from typing import Mapping

from model_diagram.models import (
    ArrayField,
    Model,
    ModelField,
    PrimitiveField,
    RawField,
    ReferenceField,
    SchemaField,
    TypeKind,
)


class FieldClassifier:
    """Narrows a RawField to the most specific SchemaField it can prove.

    Never raises: anything unrecognised becomes a PrimitiveField holding
    the literal type text.
    """

    def classify(self, raw: RawField, models: Mapping[str, Model]) -> SchemaField:
        if raw.kind is TypeKind.ARRAY and raw.element_type is not None:
            return ArrayField(
                name=raw.name,
                element_type=self._resolve(raw.element_type, models),
            )

        if raw.kind is TypeKind.GENERIC and raw.reference_name:
            return ReferenceField(
                name=raw.name,
                reference_name=raw.reference_name,
                arguments=[self._resolve(arg, models) for arg in raw.arguments],
            )

        if raw.kind is TypeKind.NAME and raw.type_text in models:
            return ModelField(name=raw.name, type=models[raw.type_text])

        return PrimitiveField(name=raw.name, type=raw.type_text)

    @staticmethod
    def _resolve(type_text: str, models: Mapping[str, Model]) -> str | Model:
        return models.get(type_text.strip(), type_text)
