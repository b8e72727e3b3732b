"""Tree-sitter parser for top-level interface and type alias declarations."""

from __future__ import annotations

import logging

from tree_sitter_language_pack import get_parser

from model_diagram.models import RawDeclaration, RawField, TypeKind

logger = logging.getLogger(__name__)

_DECLARATION_TYPES = {"interface_declaration", "type_alias_declaration"}

# Interface bodies are an aliased object_type in the typescript grammar
_OBJECT_TYPES = {"object_type", "interface_body"}

# Wrappers that do not change how a type is classified
_TRANSPARENT_TYPES = {"parenthesized_type", "readonly_type"}

_NAME_TYPES = {"type_identifier", "nested_type_identifier"}


class SchemaParser:
    """Turns source text into a flat list of RawDeclaration.

    Statements that are not (exported) interfaces or type aliases, and
    declarations tree-sitter could not parse cleanly, are skipped: the
    source is usually mid-edit.
    """

    def __init__(self, grammar_name: str = "typescript"):
        self.grammar_name = grammar_name
        self._parser_cache: dict[str, object] = {}

    def parse(self, source: str) -> list[RawDeclaration]:
        source_bytes = source.encode("utf-8")
        tree = self._get_parser(self.grammar_name).parse(source_bytes)

        declarations: list[RawDeclaration] = []
        positions: dict[str, int] = {}

        for child in tree.root_node.children:
            node = self._unwrap_export(child)
            if node is None or node.type not in _DECLARATION_TYPES:
                if child.type not in ("empty_statement", "comment"):
                    logger.debug("skipping %s at line %d", child.type, child.start_point[0] + 1)
                continue
            if node.has_error:
                logger.debug("skipping malformed declaration at line %d", node.start_point[0] + 1)
                continue

            declaration = self._parse_declaration(node, source_bytes)
            if declaration is None:
                continue

            if declaration.name in positions:
                # Last declaration wins, first position is kept
                logger.debug("duplicate declaration %r, keeping the later one", declaration.name)
                declarations[positions[declaration.name]] = declaration
            else:
                positions[declaration.name] = len(declarations)
                declarations.append(declaration)

        return declarations

    def _unwrap_export(self, node):
        if node.type == "export_statement":
            return node.child_by_field_name("declaration")
        return node

    def _parse_declaration(self, node, source_bytes: bytes) -> RawDeclaration | None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        name = _text(name_node, source_bytes)

        if node.type == "interface_declaration":
            body = node.child_by_field_name("body")
        else:
            body = node.child_by_field_name("value")

        fields: list[RawField] = []
        if body is not None and body.type in _OBJECT_TYPES:
            for member in body.named_children:
                if member.type != "property_signature":
                    continue
                raw = self._parse_property(member, source_bytes)
                if raw is not None:
                    fields.append(raw)

        return RawDeclaration(
            name=name,
            raw_fields=fields,
            line_number=node.start_point[0] + 1,
        )

    def _parse_property(self, member, source_bytes: bytes) -> RawField | None:
        name_node = member.child_by_field_name("name")
        if name_node is None:
            return None
        name = _text(name_node, source_bytes)
        if name_node.type == "string":
            name = name[1:-1]

        annotation = member.child_by_field_name("type")
        type_node = annotation.named_children[0] if annotation and annotation.named_children else None
        if type_node is None:
            return RawField(name=name, type_text="any")

        return self._describe_type(name, type_node, source_bytes)

    def _describe_type(self, name: str, type_node, source_bytes: bytes) -> RawField:
        type_text = _text(type_node, source_bytes)

        inner = type_node
        while inner.type in _TRANSPARENT_TYPES and inner.named_children:
            inner = inner.named_children[0]

        if inner.type == "array_type" and inner.named_children:
            return RawField(
                name=name,
                type_text=type_text,
                kind=TypeKind.ARRAY,
                element_type=_text(inner.named_children[0], source_bytes),
            )

        if inner.type == "generic_type":
            ref_node = inner.child_by_field_name("name")
            args_node = inner.child_by_field_name("type_arguments")
            if ref_node is not None:
                arguments = []
                if args_node is not None:
                    arguments = [
                        _text(arg, source_bytes)
                        for arg in args_node.named_children
                        if arg.type != "comment"
                    ]
                return RawField(
                    name=name,
                    type_text=type_text,
                    kind=TypeKind.GENERIC,
                    reference_name=_text(ref_node, source_bytes),
                    arguments=arguments,
                )

        if inner.type in _NAME_TYPES:
            return RawField(name=name, type_text=_text(inner, source_bytes), kind=TypeKind.NAME)

        return RawField(name=name, type_text=type_text)

    def _get_parser(self, grammar_name: str):
        if grammar_name not in self._parser_cache:
            self._parser_cache[grammar_name] = get_parser(grammar_name)
        return self._parser_cache[grammar_name]


def _text(node, source_bytes: bytes) -> str:
    return source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
