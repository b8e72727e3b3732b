"""Incremental diagram controller.

One controller per open diagram. Every source edit rebuilds the Model graph
and the view state wholesale; cached metrics carry positions and sizes
across rebuilds, and a change detector decides whether the (asynchronous)
layered layout has to run again.

Flow for one source change:
  parse -> derive nodes/edges -> merge cached metrics -> commit
        -> relayout decision -> connection invalidation
The layout itself runs on the next frame tick, in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any

from model_diagram.config import LayoutOptions, RendererOptions
from model_diagram.diagram.elements import extract_model_edges, extract_model_nodes
from model_diagram.diagram.events import DiagramEvent, DiagramEvents, DiagramEventType
from model_diagram.diagram.scheduler import FrameScheduler
from model_diagram.layout.engine import LayoutEngine
from model_diagram.models import (
    Edge,
    LayoutResult,
    LayoutState,
    Model,
    Node,
    NodeMetrics,
    Position,
    Size,
)
from model_diagram.parser import GraphBuilder, SchemaParser

logger = logging.getLogger(__name__)

FIT_VIEW_DURATION_MS = 500


class IncrementalController:
    """Owns the committed view state and every cache of one diagram."""

    def __init__(
        self,
        options: RendererOptions | None = None,
        engine: LayoutEngine | None = None,
        layout_options: LayoutOptions | None = None,
        events: DiagramEvents | None = None,
    ):
        self.options = options or RendererOptions()
        self.layout_options = layout_options or LayoutOptions()
        self.engine = engine or LayoutEngine(options=self.layout_options)
        self.events = events or DiagramEvents()
        self.scheduler = FrameScheduler(self.layout_options.frame_interval)
        self.parser = SchemaParser()
        self.builder = GraphBuilder()

        # Committed view state
        self.models: list[Model] = []
        self.nodes: list[Node] = []
        self.edges: list[Edge] = []

        # Caches
        self.manually_moved_node_ids: set[str] = set()
        self.last_known_node_metrics: dict[str, NodeMetrics] = {}
        self.last_edge_count = 0
        self.last_model_topology_hash: dict[str, tuple[str, str]] = {}
        # Metrics of nodes whose declaration vanished, e.g. while half-typed
        self._detached_metrics: dict[str, NodeMetrics] = {}

        self.layouts_applied = 0
        self._latest_token = 0
        self._in_flight: set[asyncio.Task] = set()
        self._fitted_once = False

    # ── Properties ───────────────────────────────────────────

    @property
    def state(self) -> LayoutState:
        if self.scheduler.pending:
            return LayoutState.LAYOUT_PENDING
        if self._in_flight:
            return LayoutState.LAYOUT_IN_FLIGHT
        return LayoutState.IDLE

    def get_node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    # ── Source changes ───────────────────────────────────────

    def set_source(self, source: str) -> list[Model]:
        """Rebuild the graph from ``source`` and commit the new view state."""
        models = self.builder.build(self.parser.parse(source))

        nodes = extract_model_nodes(models)
        for node in nodes:
            cached = self.last_known_node_metrics.get(node.id) or self._detached_metrics.get(node.id)
            if cached is None:
                continue
            node.position = Position(cached.position.x, cached.position.y)
            if cached.size:
                node.size = Size(cached.size.width, cached.size.height)

        self.models = models
        self._commit(nodes, extract_model_edges(models))
        self._invalidate_connections(models)
        return models

    # ── Interaction ──────────────────────────────────────────

    def measure_node(self, node_id: str, width: float, height: float) -> bool:
        """Record the rendered size of a node."""
        return self._update_node(node_id, size=Size(width, height))

    def move_node(self, node_id: str, x: float, y: float) -> bool:
        """A user drag ended: pin the node where it was dropped."""
        if self.get_node(node_id) is None:
            logger.debug("move for unknown node %r ignored", node_id)
            return False
        self.manually_moved_node_ids.add(node_id)
        return self._update_node(node_id, position=Position(x, y))

    def notice_viewport_interaction(self) -> None:
        """The user panned, zoomed or dragged: stop fitting the view automatically."""
        self.options.auto_fit_view = False

    def toggle_auto_fit(self) -> None:
        self.options.auto_fit_view = not self.options.auto_fit_view
        self.request_layout()

    def toggle_direction(self) -> None:
        self.options.direction = self.options.direction.flipped
        self.options.auto_fit_view = True
        self.request_layout()

    # ── Layout scheduling ────────────────────────────────────

    def request_layout(self) -> None:
        """Schedule a layout pass on the next frame (coalesced)."""
        self.scheduler.request(self._start_layout)

    async def layout_now(self) -> None:
        """Run one layout pass immediately and wait for it to settle."""
        self.scheduler.cancel()
        self._start_layout()
        await self.wait_idle()

    async def wait_idle(self) -> None:
        while self.scheduler.pending or self._in_flight:
            if self._in_flight:
                await asyncio.gather(*self._in_flight, return_exceptions=True)
            else:
                await asyncio.sleep(self.scheduler.interval)

    def close(self) -> None:
        self.scheduler.cancel()
        for task in list(self._in_flight):
            task.cancel()

    def _start_layout(self) -> None:
        self._latest_token += 1
        task = asyncio.get_running_loop().create_task(self._run_layout(self._latest_token))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run_layout(self, token: int) -> None:
        requested = list(self.nodes)
        try:
            result = await self.engine.compute_layout(
                requested,
                list(self.edges),
                self.options.direction,
                set(self.manually_moved_node_ids),
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if token != self._latest_token:
                logger.debug("ignoring failure of stale layout %d: %s", token, e)
                return
            logger.warning("layout postponed: %s", e)
            self._publish(DiagramEventType.LAYOUT_POSTPONED, reason=str(e))
            return

        if token != self._latest_token:
            logger.debug("discarding stale layout result %d (latest is %d)", token, self._latest_token)
            return
        self._apply_layout(result, token, {node.id: node.size for node in requested})

    def _apply_layout(self, result: LayoutResult, token: int, sent_sizes: dict[str, Size | None]) -> None:
        # Merge onto the current state so edits made in flight survive
        layouted = {node.id: node for node in result.nodes}
        nodes: list[Node] = []
        for node in self.nodes:
            computed = layouted.get(node.id)
            if computed is None or node.id in self.manually_moved_node_ids:
                nodes.append(node)
                continue
            size = node.size
            # A measurement that arrived in flight is newer than the echoed size
            if node.id in sent_sizes and sent_sizes[node.id] == node.size:
                size = computed.size or node.size
            nodes.append(replace(
                node,
                position=Position(computed.position.x, computed.position.y),
                size=size,
            ))

        self.layouts_applied += 1
        logger.info("layout %d applied to %d node(s)", token, len(nodes))
        self._commit(nodes, self.edges)
        self._publish(DiagramEventType.LAYOUT_APPLIED, token=token)

        if self.options.auto_fit_view:
            duration = FIT_VIEW_DURATION_MS if self._fitted_once else 0
            self._fitted_once = True
            self._publish(
                DiagramEventType.FIT_VIEW,
                padding=self.options.fit_view_padding(),
                duration=duration,
            )

    # ── Commit and change detection ──────────────────────────

    def _update_node(self, node_id: str, **changes: Any) -> bool:
        nodes: list[Node] = []
        found = False
        for node in self.nodes:
            if node.id == node_id:
                node = replace(node, **changes)
                found = True
            nodes.append(node)
        if not found:
            logger.debug("update for unknown node %r ignored", node_id)
            return False
        self._commit(nodes, self.edges)
        return True

    def _commit(self, nodes: list[Node], edges: list[Edge]) -> None:
        self.nodes = nodes
        self.edges = edges
        self._publish(DiagramEventType.STATE_COMMITTED, nodes=len(nodes), edges=len(edges))

        needs_layout = self._needs_layout()
        metrics = {node.id: NodeMetrics.of(node) for node in nodes}
        for node_id, cached in self.last_known_node_metrics.items():
            if node_id not in metrics:
                self._detached_metrics[node_id] = cached
        for node_id in metrics:
            self._detached_metrics.pop(node_id, None)
        self.last_known_node_metrics = metrics
        self.last_edge_count = len(edges)
        if needs_layout:
            self.request_layout()

    def _needs_layout(self) -> bool:
        if len(self.edges) != self.last_edge_count:
            return True
        if len(self.nodes) != len(self.last_known_node_metrics):
            return True
        for node in self.nodes:
            cached = self.last_known_node_metrics.get(node.id)
            if cached is None or cached.size != node.size:
                return True
        return False

    def _invalidate_connections(self, models: list[Model]) -> None:
        current = {model.id: model.topology_hash() for model in models}
        for model_id, digest in current.items():
            previous = self.last_model_topology_hash.get(model_id)
            if previous is not None and previous != digest:
                self._publish(DiagramEventType.CONNECTIONS_INVALIDATED, node_id=model_id)
        self.last_model_topology_hash = current

    def _publish(self, event_type: DiagramEventType, node_id: str | None = None, **data: Any) -> None:
        self.events.publish(DiagramEvent(event_type=event_type, node_id=node_id, data=data))

    # ── Serialization ────────────────────────────────────────

    def view_state(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "direction": self.options.direction.value,
            "auto_fit_view": self.options.auto_fit_view,
            "theme": self.options.theme,
            "enable_minimap": self.options.enable_minimap,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
            "pinned": sorted(self.manually_moved_node_ids),
        }
