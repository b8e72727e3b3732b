"""Tests for the layered layout service."""

import pytest

from model_diagram.config import LayoutOptions
from model_diagram.layout.layered import GRAPH_PADDING, LayeredLayout, LayoutError
from model_diagram.models import Direction


def _child(node_id, width=100, height=40, fields=(), **extra):
    child = {
        "id": node_id,
        "width": width,
        "height": height,
        "ports": [
            {"id": f"{node_id}-{name}", "order": i, "properties": {"port.side": "EAST"}}
            for i, name in enumerate(fields)
        ],
    }
    child.update(extra)
    return child


def _edge(edge_id, source, target):
    return {"id": edge_id, "sources": [source], "targets": [target]}


def _graph(children, edges, direction=Direction.HORIZONTAL):
    return {
        "id": "root",
        "layoutOptions": LayoutOptions().to_layout_options(direction),
        "children": children,
        "edges": edges,
    }


@pytest.fixture
def layout():
    return LayeredLayout()


def _positions(result):
    return {c["id"]: (c["x"], c["y"]) for c in result["children"]}


def test_horizontal_chain_flows_right(layout):
    result = layout.layout(_graph(
        [_child("A", fields=["b"]), _child("B", fields=["c"]), _child("C")],
        [_edge("1", "A-b", "B"), _edge("2", "B-c", "C")],
    ))
    pos = _positions(result)
    assert pos["A"][0] < pos["B"][0] < pos["C"][0]
    # Layer gap is the between-layer spacing plus the edge spacing
    assert pos["B"][0] - pos["A"][0] == pytest.approx(100 + 60)


def test_vertical_chain_flows_down(layout):
    result = layout.layout(_graph(
        [_child("A"), _child("B")],
        [_edge("1", "A", "B")],
        direction=Direction.VERTICAL,
    ))
    pos = _positions(result)
    assert pos["A"][1] < pos["B"][1]


def test_output_keeps_child_fields_and_sizes(layout):
    child = _child("A", width=120, height=80, fields=["x"])
    result = layout.layout(_graph([child], []))
    out = result["children"][0]
    assert out["ports"] == child["ports"]
    assert (out["width"], out["height"]) == (120, 80)
    assert (out["x"], out["y"]) == (GRAPH_PADDING, GRAPH_PADDING)
    assert result["width"] == GRAPH_PADDING + 120 + GRAPH_PADDING


def test_siblings_do_not_overlap(layout):
    result = layout.layout(_graph(
        [_child("A", fields=["b", "c"]), _child("B"), _child("C")],
        [_edge("1", "A-b", "B"), _edge("2", "A-c", "C")],
    ))
    by_id = {c["id"]: c for c in result["children"]}
    b, c = by_id["B"], by_id["C"]
    assert b["x"] == c["x"]
    upper, lower = sorted([b, c], key=lambda n: n["y"])
    assert lower["y"] >= upper["y"] + upper["height"] + 50


def test_port_order_orders_targets(layout):
    result = layout.layout(_graph(
        [_child("A", fields=["first", "second"]), _child("Second"), _child("First")],
        [_edge("1", "A-second", "Second"), _edge("2", "A-first", "First")],
    ))
    pos = _positions(result)
    assert pos["First"][1] < pos["Second"][1]


def test_cycles_and_self_loops(layout):
    result = layout.layout(_graph(
        [_child("A", fields=["b", "me"]), _child("B", fields=["a"])],
        [_edge("1", "A-b", "B"), _edge("2", "A-me", "A"), _edge("3", "B-a", "A")],
    ))
    sections = {e["id"]: e["sections"] for e in result["edges"]}
    assert sections["2"] == []
    assert len(sections["1"]) == 1
    assert len(sections["3"]) == 1
    pos = _positions(result)
    assert pos["A"] != pos["B"]


def test_long_edges_get_bend_points(layout):
    result = layout.layout(_graph(
        [_child("A", fields=["b", "c"]), _child("B", fields=["c"]), _child("C", height=200)],
        [_edge("1", "A-b", "B"), _edge("2", "B-c", "C"), _edge("3", "A-c", "C")],
    ))
    section = next(e for e in result["edges"] if e["id"] == "3")["sections"][0]
    assert set(section) == {"id", "startPoint", "endPoint", "bendPoints"}
    for bend in section["bendPoints"]:
        assert set(bend) == {"x", "y"}


def test_seeded_children_keep_coordinates(layout):
    result = layout.layout(_graph(
        [_child("A", fields=["b"], x=500, y=700), _child("B")],
        [_edge("1", "A-b", "B")],
    ))
    assert _positions(result)["A"] == (500, 700)


def test_unknown_edge_endpoint_raises(layout):
    with pytest.raises(LayoutError):
        layout.layout(_graph([_child("A")], [_edge("1", "A", "Missing")]))


def test_duplicate_child_raises(layout):
    with pytest.raises(LayoutError):
        layout.layout(_graph([_child("A"), _child("A")], []))


def test_empty_graph(layout):
    result = layout.layout(_graph([], []))
    assert result["children"] == []
    assert result["edges"] == []


def test_layout_is_deterministic(layout):
    graph = _graph(
        [_child("A", fields=["b", "c"]), _child("B", fields=["a"]), _child("C"), _child("D", fields=["c"])],
        [_edge("1", "A-b", "B"), _edge("2", "A-c", "C"), _edge("3", "B-a", "A"), _edge("4", "D-c", "C")],
    )
    assert _positions(layout.layout(graph)) == _positions(LayeredLayout().layout(graph))
