"""Tests for node and edge derivation."""

from pathlib import Path

from model_diagram.diagram.elements import extract_model_edges, extract_model_nodes
from model_diagram.models import Position
from model_diagram.parser import parse_models

FIXTURES = Path(__file__).parent / "fixtures"


def test_nodes_start_unmeasured_off_screen():
    models = parse_models("type A = { a: string }; type B = {};")
    nodes = extract_model_nodes(models)
    assert [n.id for n in nodes] == ["A", "B"]
    for node, model in zip(nodes, models):
        assert node.type == "model"
        assert node.position == Position(-1, -1)
        assert node.size is None
        assert node.model is model


def test_fixture_edges():
    edges = extract_model_edges(parse_models((FIXTURES / "schema.ts").read_text()))
    assert [(e.id, e.source, e.target, e.source_handle) for e in edges] == [
        ("1-User-profile", "User", "Profile", "User-profile"),
        ("2-User-posts", "User", "Post", "User-posts"),
        ("3-User-friends-User", "User", "User", "User-friends"),
        ("4-Profile-owner", "Profile", "User", "Profile-owner"),
        ("5-Post-author", "Post", "User", "Post-author"),
        ("6-Post-tags-Tag", "Post", "Tag", "Post-tags"),
    ]


def test_duplicate_generic_arguments_keep_unique_ids():
    edges = extract_model_edges(parse_models("type C = { c: Map<A, A> }; type A = {};"))
    assert [e.id for e in edges] == ["1-C-c-A", "2-C-c-A"]


def test_primitive_fields_produce_no_edges():
    edges = extract_model_edges(parse_models("type A = { a: string; b: number[]; c: Map<string, Date> };"))
    assert edges == []


def test_edge_to_dict():
    edge = extract_model_edges(parse_models("type A = { b: B }; type B = {};"))[0]
    assert edge.to_dict() == {"id": "1-A-b", "source": "A", "target": "B", "sourceHandle": "A-b"}
