"""Layered (Sugiyama-style) layout service.

Consumes and produces ELK-shaped JSON graphs so the engine can treat it as a
black box:

  1. Cycle breaking     (greedy-FAS, self-loops ignored)
  2. Layer assignment   (longest path over the acyclic copy)
  3. Dummy insertion    (long edges become chains of one-layer segments)
  4. Crossing reduction (barycenter sweeps, source ports weight the order)
  5. Coordinates        (layers along the flow axis, nodes stacked across it)
  6. Edge routing       (orthogonal sections through the dummy chain)

Children that arrive with ``x``/``y`` keep them; they also keep their
relative order inside a layer (semi-interactive crossing reduction).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import pairwise
from typing import Any

import networkx as nx

DUMMY_PREFIX = "__dummy_"
GRAPH_PADDING = 12
MAX_SWEEPS = 24


class LayoutError(Exception):
    """The layout request does not describe a valid graph."""


@dataclass
class _Box:
    id: str
    width: float
    height: float
    index: int
    seed: tuple[float, float] | None = None
    ports: dict[str, float] = field(default_factory=dict)  # port id -> fraction along the side
    x: float = 0.0
    y: float = 0.0

    @property
    def is_dummy(self) -> bool:
        return self.id.startswith(DUMMY_PREFIX)


@dataclass
class _Route:
    edge_id: str
    source: str
    target: str
    port: str | None
    chain: list[str] = field(default_factory=list)  # dummy ids, source side first
    reversed: bool = False


class LayeredLayout:
    """Compute node positions for an ELK-shaped graph description."""

    def layout(self, graph: dict[str, Any]) -> dict[str, Any]:
        options = dict(graph.get("layoutOptions") or {})
        horizontal = options.get("elk.direction", "RIGHT") in ("RIGHT", "LEFT")
        between_layers = _float(options, "elk.layered.spacing.nodeNodeBetweenLayers", 30)
        edge_between_layers = _float(options, "elk.layered.spacing.edgeNodeBetweenLayers", 30)
        node_spacing = _float(options, "elk.spacing.nodeNode", 50)

        boxes, port_owner = self._read_children(graph.get("children") or [])
        routes = self._read_edges(graph.get("edges") or [], boxes, port_owner)

        dag = nx.DiGraph()
        dag.add_nodes_from(boxes)
        reversed_pairs = self._break_cycles(boxes, routes)
        for route in routes:
            if route.source == route.target:
                continue
            route.reversed = (route.source, route.target) in reversed_pairs
            upper, lower = (route.target, route.source) if route.reversed else (route.source, route.target)
            weight = boxes[route.source].ports.get(route.port, 0.5) if not route.reversed else 0.5
            if not dag.has_edge(upper, lower):
                dag.add_edge(upper, lower, port=weight)

        layers = self._assign_layers(dag)
        aug = self._insert_dummies(dag, layers, routes, boxes)
        ordering = self._order_layers(aug, layers, boxes, horizontal)
        self._assign_coordinates(
            ordering, aug, boxes, horizontal,
            layer_gap=between_layers + edge_between_layers,
            node_spacing=node_spacing,
        )
        self._restore_seeds(boxes)

        children = []
        for child in graph.get("children") or []:
            box = boxes[child["id"]]
            out = dict(child)
            out.update(x=box.x, y=box.y, width=box.width, height=box.height)
            children.append(out)

        edges = []
        for edge, route in zip(graph.get("edges") or [], routes):
            out = dict(edge)
            out["sections"] = self._route(route, boxes, horizontal)
            edges.append(out)

        real = [b for b in boxes.values() if not b.is_dummy]
        width = max((b.x + b.width for b in real), default=0) + GRAPH_PADDING
        height = max((b.y + b.height for b in real), default=0) + GRAPH_PADDING
        return {
            "id": graph.get("id", "root"),
            "x": 0,
            "y": 0,
            "width": width,
            "height": height,
            "children": children,
            "edges": edges,
        }

    # ── Input ────────────────────────────────────────────────

    def _read_children(self, children: list[dict]) -> tuple[dict[str, _Box], dict[str, str]]:
        boxes: dict[str, _Box] = {}
        port_owner: dict[str, str] = {}
        for index, child in enumerate(children):
            node_id = child.get("id")
            if node_id is None:
                raise LayoutError(f"child #{index} has no id")
            if node_id in boxes:
                raise LayoutError(f"duplicate child id: {node_id}")

            seed = None
            if child.get("x") is not None and child.get("y") is not None:
                seed = (float(child["x"]), float(child["y"]))

            ports = sorted(child.get("ports") or [], key=lambda p: p.get("order", 0))
            fractions = {p["id"]: (i + 1) / (len(ports) + 1) for i, p in enumerate(ports)}
            for port_id in fractions:
                port_owner[port_id] = node_id

            boxes[node_id] = _Box(
                id=node_id,
                width=float(child.get("width") or 0),
                height=float(child.get("height") or 0),
                index=index,
                seed=seed,
                ports=fractions,
            )
        return boxes, port_owner

    def _read_edges(self, edges: list[dict], boxes: dict[str, _Box], port_owner: dict[str, str]) -> list[_Route]:
        routes: list[_Route] = []
        for edge in edges:
            sources = edge.get("sources") or []
            targets = edge.get("targets") or []
            if not sources or not targets:
                raise LayoutError(f"edge {edge.get('id')!r} needs a source and a target")

            source_ref, target_ref = sources[0], targets[0]
            source = port_owner.get(source_ref, source_ref)
            target = port_owner.get(target_ref, target_ref)
            if source not in boxes or target not in boxes:
                raise LayoutError(f"edge {edge.get('id')!r} references an unknown node")

            routes.append(_Route(
                edge_id=edge.get("id", ""),
                source=source,
                target=target,
                port=source_ref if source_ref in port_owner else None,
            ))
        return routes

    # ── Phase 1: cycle breaking ──────────────────────────────

    def _break_cycles(self, boxes: dict[str, _Box], routes: list[_Route]) -> set[tuple[str, str]]:
        """Greedy-FAS ordering; edges pointing backwards in it get reversed."""
        graph = nx.DiGraph()
        graph.add_nodes_from(boxes)
        graph.add_edges_from((r.source, r.target) for r in routes if r.source != r.target)

        active = list(boxes)
        out_deg = {n: graph.out_degree(n) for n in active}
        in_deg = {n: graph.in_degree(n) for n in active}
        head: list[str] = []
        tail: list[str] = []

        def remove(node: str) -> None:
            active.remove(node)
            for succ in graph.successors(node):
                in_deg[succ] -= 1
            for pred in graph.predecessors(node):
                out_deg[pred] -= 1

        while active:
            sinks = [n for n in active if out_deg[n] == 0]
            for sink in sinks:
                remove(sink)
                tail.append(sink)
            if sinks:
                continue
            sources = [n for n in active if in_deg[n] == 0]
            for source in sources:
                remove(source)
                head.append(source)
            if sources:
                continue
            best = max(active, key=lambda n: (out_deg[n] - in_deg[n], -boxes[n].index))
            remove(best)
            head.append(best)

        rank = {n: i for i, n in enumerate(head + tail[::-1])}
        return {(u, v) for u, v in graph.edges if rank[u] > rank[v]}

    # ── Phase 2: layering ────────────────────────────────────

    def _assign_layers(self, dag: nx.DiGraph) -> dict[str, int]:
        layers = {n: 0 for n in dag.nodes}
        for node in nx.topological_sort(dag):
            for succ in dag.successors(node):
                layers[succ] = max(layers[succ], layers[node] + 1)
        return layers

    # ── Phase 3: dummy nodes ─────────────────────────────────

    def _insert_dummies(
        self,
        dag: nx.DiGraph,
        layers: dict[str, int],
        routes: list[_Route],
        boxes: dict[str, _Box],
    ) -> nx.DiGraph:
        aug = nx.DiGraph()
        aug.add_nodes_from(dag.nodes)
        chains: dict[tuple[str, str], list[str]] = {}

        for counter, (upper, lower, attrs) in enumerate(dag.edges(data=True)):
            span = layers[lower] - layers[upper]
            previous = upper
            chain: list[str] = []
            for step in range(1, span):
                dummy = f"{DUMMY_PREFIX}{counter}_{step}"
                layers[dummy] = layers[upper] + step
                boxes[dummy] = _Box(id=dummy, width=0, height=0, index=len(boxes))
                aug.add_edge(previous, dummy, port=attrs["port"] if previous == upper else 0.5)
                chain.append(dummy)
                previous = dummy
            aug.add_edge(previous, lower, port=attrs["port"] if previous == upper else 0.5)
            chains[(upper, lower)] = chain

        for route in routes:
            if route.source == route.target:
                continue
            if route.reversed:
                route.chain = list(reversed(chains[(route.target, route.source)]))
            else:
                route.chain = list(chains[(route.source, route.target)])
        return aug

    # ── Phase 4: crossing reduction ──────────────────────────

    def _order_layers(
        self,
        aug: nx.DiGraph,
        layers: dict[str, int],
        boxes: dict[str, _Box],
        horizontal: bool,
    ) -> list[list[str]]:
        layer_count = max(layers.values(), default=-1) + 1
        ordering: list[list[str]] = [[] for _ in range(layer_count)]
        for node in sorted(layers, key=lambda n: boxes[n].index):
            ordering[layers[node]].append(node)

        best = [list(layer) for layer in ordering]
        best_crossings = _count_crossings(best, aug)

        for _sweep in range(MAX_SWEEPS):
            for idx in range(1, layer_count):
                upper = {n: i for i, n in enumerate(ordering[idx - 1])}
                current = {n: i for i, n in enumerate(ordering[idx])}
                ordering[idx].sort(key=lambda n: _barycenter(n, aug, upper, current[n], incoming=True))
            for idx in range(layer_count - 2, -1, -1):
                lower = {n: i for i, n in enumerate(ordering[idx + 1])}
                current = {n: i for i, n in enumerate(ordering[idx])}
                ordering[idx].sort(key=lambda n: _barycenter(n, aug, lower, current[n], incoming=False))

            crossings = _count_crossings(ordering, aug)
            if crossings >= best_crossings:
                break
            best = [list(layer) for layer in ordering]
            best_crossings = crossings

        # Seeded nodes keep their relative order inside the slots they occupy
        axis = 1 if horizontal else 0
        for layer in best:
            slots = [i for i, n in enumerate(layer) if boxes[n].seed is not None]
            seeded = sorted((layer[i] for i in slots), key=lambda n: boxes[n].seed[axis])
            for slot, node in zip(slots, seeded):
                layer[slot] = node
        return best

    # ── Phase 5: coordinates ─────────────────────────────────

    def _assign_coordinates(
        self,
        ordering: list[list[str]],
        aug: nx.DiGraph,
        boxes: dict[str, _Box],
        horizontal: bool,
        layer_gap: float,
        node_spacing: float,
    ) -> None:
        def along(box: _Box) -> float:
            return box.width if horizontal else box.height

        def across(box: _Box) -> float:
            return box.height if horizontal else box.width

        centers: dict[str, float] = {}
        offset = 0.0
        for layer in ordering:
            thickness = max((along(boxes[n]) for n in layer), default=0)

            desired: dict[str, float] = {}
            for node in layer:
                parents = [centers[p] for p in aug.predecessors(node) if p in centers]
                if parents:
                    desired[node] = sum(parents) / len(parents)

            starts: list[float] = []
            cursor = float("-inf")
            for node in layer:
                size = across(boxes[node])
                gap = node_spacing if not boxes[node].is_dummy else node_spacing / 2
                start = desired[node] - size / 2 if node in desired else max(cursor, 0.0)
                start = max(start, cursor)
                starts.append(start)
                cursor = start + size + gap

            anchored = [(s, n) for s, n in zip(starts, layer) if n in desired]
            if anchored:
                drift = sum(s + across(boxes[n]) / 2 - desired[n] for s, n in anchored) / len(anchored)
                starts = [s - drift for s in starts]

            for start, node in zip(starts, layer):
                box = boxes[node]
                centers[node] = start + across(box) / 2
                primary = offset + (thickness - along(box)) / 2
                if horizontal:
                    box.x, box.y = primary, start
                else:
                    box.x, box.y = start, primary
            offset += thickness + layer_gap

        if boxes:
            min_x = min(b.x for b in boxes.values())
            min_y = min(b.y for b in boxes.values())
            for box in boxes.values():
                box.x += GRAPH_PADDING - min_x
                box.y += GRAPH_PADDING - min_y

    def _restore_seeds(self, boxes: dict[str, _Box]) -> None:
        for box in boxes.values():
            if box.seed is not None:
                box.x, box.y = box.seed

    # ── Phase 6: routing ─────────────────────────────────────

    def _route(self, route: _Route, boxes: dict[str, _Box], horizontal: bool) -> list[dict]:
        if route.source == route.target:
            return []
        source, target = boxes[route.source], boxes[route.target]
        fraction = source.ports.get(route.port, 0.5)

        if horizontal:
            start = (source.x + source.width, source.y + source.height * fraction)
            end = (target.x, target.y + target.height / 2)
        else:
            start = (source.x + source.width * fraction, source.y + source.height)
            end = (target.x + target.width / 2, target.y)

        points = [start]
        points.extend((boxes[d].x, boxes[d].y) for d in route.chain)
        points.append(end)

        bends: list[dict[str, float]] = []
        for a, b in pairwise(points):
            if horizontal and a[1] != b[1]:
                mid = (a[0] + b[0]) / 2
                bends.extend(({"x": mid, "y": a[1]}, {"x": mid, "y": b[1]}))
            elif not horizontal and a[0] != b[0]:
                mid = (a[1] + b[1]) / 2
                bends.extend(({"x": a[0], "y": mid}, {"x": b[0], "y": mid}))

        return [{
            "id": f"{route.edge_id}_s0",
            "startPoint": {"x": start[0], "y": start[1]},
            "endPoint": {"x": end[0], "y": end[1]},
            "bendPoints": bends,
        }]


def _barycenter(node: str, graph: nx.DiGraph, neighbor_pos: dict[str, int], fallback: int, incoming: bool) -> float:
    """Mean neighbour position in the adjacent layer; source ports shift it."""
    if incoming:
        weights = [
            neighbor_pos[p] + graph.edges[p, node]["port"]
            for p in graph.predecessors(node)
            if p in neighbor_pos
        ]
    else:
        weights = [neighbor_pos[s] for s in graph.successors(node) if s in neighbor_pos]
    if not weights:
        return float(fallback)
    return sum(weights) / len(weights)


def _count_crossings(ordering: list[list[str]], graph: nx.DiGraph) -> int:
    """Crossings between adjacent layers; edges leave their source at the port offset."""
    total = 0
    for upper, lower in pairwise(ordering):
        lower_pos = {n: i for i, n in enumerate(lower)}
        segments = [
            (i + graph.edges[node, succ]["port"], lower_pos[succ])
            for i, node in enumerate(upper)
            for succ in graph.successors(node)
            if succ in lower_pos
        ]
        for i, (a_up, a_low) in enumerate(segments):
            for b_up, b_low in segments[i + 1:]:
                if (a_up - b_up) * (a_low - b_low) < 0:
                    total += 1
    return total


def _float(options: dict[str, Any], key: str, default: float) -> float:
    try:
        return float(options.get(key, default))
    except (TypeError, ValueError):
        return default
