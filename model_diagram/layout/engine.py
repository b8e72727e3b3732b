"""Layout engine: turns view state into a layered-layout request and applies the result."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Protocol

from model_diagram.config import LayoutOptions, port_side
from model_diagram.layout.layered import LayeredLayout
from model_diagram.models import Direction, Edge, LayoutResult, Node, Position, Size

logger = logging.getLogger(__name__)


class LayoutService(Protocol):
    def layout(self, graph: dict[str, Any]) -> dict[str, Any]: ...


def port_id(node_id: str, field_name: str) -> str:
    return f"{node_id}-{field_name}"


class LayoutEngine:
    """Drives a layout service (``LayeredLayout`` by default) for one diagram.

    The service call is CPU-bound, so it runs in a worker thread while the
    event loop keeps serving interaction.
    """

    def __init__(self, service: LayoutService | None = None, options: LayoutOptions | None = None):
        self.service = service or LayeredLayout()
        self.options = options or LayoutOptions()

    async def compute_layout(
        self,
        nodes: list[Node],
        edges: list[Edge],
        direction: Direction,
        pinned_ids: Iterable[str] = (),
    ) -> LayoutResult:
        pinned = set(pinned_ids)
        request = self.build_request(nodes, edges, direction, pinned)
        layouted = await asyncio.to_thread(self.service.layout, request)
        return self.apply_result(nodes, edges, layouted, pinned)

    def build_request(
        self,
        nodes: list[Node],
        edges: list[Edge],
        direction: Direction,
        pinned_ids: set[str],
    ) -> dict[str, Any]:
        layout_options = self.options.to_layout_options(direction)
        side = port_side(direction)

        children = []
        for node in nodes:
            child: dict[str, Any] = {
                "id": node.id,
                "width": node.size.width if node.size else 0,
                "height": node.size.height if node.size else 0,
                "ports": [
                    {
                        "id": port_id(node.id, f.name),
                        "order": index,
                        "properties": {"port.side": side},
                    }
                    for index, f in enumerate(node.model.schema)
                ],
            }
            if node.id in pinned_ids:
                # Fixed seed: the algorithm anchors around it instead of moving it
                child["x"] = node.position.x
                child["y"] = node.position.y
            children.append(child)

        return {
            "id": "root",
            "layoutOptions": layout_options,
            "children": children,
            "edges": [
                {
                    "id": edge.id,
                    "sources": [edge.source_handle or edge.source],
                    "targets": [edge.target],
                }
                for edge in edges
            ],
        }

    def apply_result(
        self,
        nodes: list[Node],
        edges: list[Edge],
        layouted: dict[str, Any],
        pinned_ids: set[str],
    ) -> LayoutResult:
        by_id = {child["id"]: child for child in layouted.get("children") or []}

        result: list[Node] = []
        for node in nodes:
            child = by_id.get(node.id)
            if child is None:
                result.append(node)
                continue

            if node.id in pinned_ids:
                position = Position(node.position.x, node.position.y)
            else:
                position = Position(
                    child["x"] if child.get("x") is not None else node.position.x,
                    child["y"] if child.get("y") is not None else node.position.y,
                )

            size = node.size
            if child.get("width") and child.get("height"):
                size = Size(child["width"], child["height"])

            result.append(Node(
                id=node.id,
                model=node.model,
                type=node.type,
                position=position,
                size=size,
            ))

        logger.debug("layout result applied to %d node(s)", len(by_id))
        return LayoutResult(nodes=result, edges=list(edges))
