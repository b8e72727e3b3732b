"""Tests for the tree-sitter schema parser."""

import pytest
from pathlib import Path

from model_diagram.models import TypeKind
from model_diagram.parser.schema_parser import SchemaParser

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def parser():
    return SchemaParser()


def test_interface_and_alias_declarations(parser):
    decls = parser.parse("interface A { a: string; }\ntype B = { b: number };")
    assert [d.name for d in decls] == ["A", "B"]
    assert decls[0].raw_fields[0].name == "a"
    assert decls[0].raw_fields[0].type_text == "string"
    assert decls[1].line_number == 2


def test_exported_declarations(parser):
    decls = parser.parse("export interface A { a: string }\nexport type B = { b: A };")
    assert [d.name for d in decls] == ["A", "B"]


def test_non_object_alias_registers_name(parser):
    decls = parser.parse("type A = string;")
    assert len(decls) == 1
    assert decls[0].name == "A"
    assert decls[0].raw_fields == []


def test_other_statements_are_skipped(parser):
    source = (
        "import { x } from './x';\n"
        "const value = 1;\n"
        "function f() { return 2; }\n"
        "class K {}\n"
        "interface A { a: string }\n"
    )
    decls = parser.parse(source)
    assert [d.name for d in decls] == ["A"]


def test_field_kinds(parser):
    source = """
    interface A {
      plain: string;
      list: B[];
      generic: Map<string, B>;
      named: B;
      union: string | number;
      literal: "x";
    }
    """
    fields = {f.name: f for f in parser.parse(source)[0].raw_fields}

    assert fields["plain"].kind is TypeKind.OTHER
    assert fields["plain"].type_text == "string"

    assert fields["list"].kind is TypeKind.ARRAY
    assert fields["list"].element_type == "B"

    assert fields["generic"].kind is TypeKind.GENERIC
    assert fields["generic"].reference_name == "Map"
    assert fields["generic"].arguments == ["string", "B"]

    assert fields["named"].kind is TypeKind.NAME
    assert fields["named"].type_text == "B"

    assert fields["union"].kind is TypeKind.OTHER
    assert fields["union"].type_text == "string | number"

    assert fields["literal"].type_text == '"x"'


def test_array_generic_is_generic(parser):
    fields = parser.parse("type A = { a: Array<B> };")[0].raw_fields
    assert fields[0].kind is TypeKind.GENERIC
    assert fields[0].reference_name == "Array"
    assert fields[0].arguments == ["B"]


def test_readonly_and_parenthesized_arrays(parser):
    fields = parser.parse("type A = { a: readonly B[]; b: (C)[] };")[0].raw_fields
    assert fields[0].kind is TypeKind.ARRAY
    assert fields[0].element_type == "B"
    assert fields[1].kind is TypeKind.ARRAY


def test_optional_and_quoted_names(parser):
    fields = parser.parse("interface A { maybe?: string; 'quoted-name': number; readonly r: B }")[0].raw_fields
    assert [f.name for f in fields] == ["maybe", "quoted-name", "r"]
    assert fields[2].kind is TypeKind.NAME


def test_missing_annotation_is_any(parser):
    fields = parser.parse("interface A { untyped; }")[0].raw_fields
    assert fields[0].name == "untyped"
    assert fields[0].type_text == "any"


def test_methods_and_index_signatures_are_skipped(parser):
    source = "interface A { a: string; run(): void; [key: string]: unknown; }"
    fields = parser.parse(source)[0].raw_fields
    assert [f.name for f in fields] == ["a"]


def test_duplicate_names_last_wins_first_position(parser):
    source = """
    type A = { first: string };
    type B = { b: string };
    type A = { second: number };
    """
    decls = parser.parse(source)
    assert [d.name for d in decls] == ["A", "B"]
    assert [f.name for f in decls[0].raw_fields] == ["second"]


def test_malformed_input_never_raises(parser):
    for source in ["", "interface", "type = {", "}}}{{{", "interface A { a: ", "type A = { a: B<; }"]:
        assert isinstance(parser.parse(source), list)


def test_well_formed_declaration_survives_broken_tail(parser):
    decls = parser.parse("interface A { a: string }\n\ninterface B { b: ")
    names = [d.name for d in decls]
    assert "A" in names
    assert "B" not in names


def test_fixture_declarations(parser):
    decls = parser.parse((FIXTURES / "schema.ts").read_text())
    assert [d.name for d in decls] == ["User", "Profile", "Post", "Tag"]
    assert [f.name for f in decls[0].raw_fields] == ["id", "profile", "posts", "friends"]
