"""Renderer and layout options."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from model_diagram.models import Direction

_THEMES = ("light", "dark")

FRAME_INTERVAL = 1 / 60


def _env_direction(default: Direction) -> Direction:
    value = os.getenv("MODEL_DIAGRAM_DIRECTION", "").strip().lower()
    try:
        return Direction(value)
    except ValueError:
        return default


@dataclass
class RendererOptions:
    """Per-diagram options. ``theme`` and ``enable_minimap`` are only carried
    through for the rendering layer."""
    direction: Direction | None = None
    auto_fit_view: bool = True
    theme: str = ""
    enable_minimap: bool = True

    def __post_init__(self):
        if self.direction is None:
            self.direction = _env_direction(Direction.HORIZONTAL)
        elif isinstance(self.direction, str):
            self.direction = Direction(self.direction)
        if not self.theme:
            self.theme = os.getenv("MODEL_DIAGRAM_THEME", "light")
        if self.theme not in _THEMES:
            self.theme = "light"

    def fit_view_padding(self) -> float:
        return 0.15 if self.direction is Direction.HORIZONTAL else 0.5


@dataclass
class LayoutOptions:
    """Spacing and scheduling parameters for the layered layout."""
    node_node_between_layers: float = 30
    edge_node_between_layers: float = 30
    node_node: float = 50
    component_component: float = 50
    frame_interval: float = FRAME_INTERVAL
    extra: dict[str, str] = field(default_factory=dict)

    def to_layout_options(self, direction: Direction) -> dict[str, str]:
        options = {
            "elk.algorithm": "layered",
            "elk.direction": "RIGHT" if direction is Direction.HORIZONTAL else "DOWN",
            "elk.edgeRouting": "ORTHOGONAL",
            "elk.insideSelfLoops.activate": "false",
            "elk.interactiveLayout": "true",
            "elk.layered.crossingMinimization.semiInteractive": "true",
            "elk.layered.cycleBreaking.strategy": "INTERACTIVE",
            "elk.layered.layering.strategy": "INTERACTIVE",
            "elk.layered.nodePlacement.strategy": "INTERACTIVE",
            "elk.layered.spacing.edgeNodeBetweenLayers": _num(self.edge_node_between_layers),
            "elk.layered.spacing.nodeNodeBetweenLayers": _num(self.node_node_between_layers),
            "elk.spacing.nodeNode": _num(self.node_node),
            "elk.spacing.componentComponent": _num(self.component_component),
            "elk.separateConnectedComponents": "false",
        }
        options.update(self.extra)
        return options


def _num(value: float) -> str:
    return f"{value:g}"


def port_side(direction: Direction) -> str:
    return "EAST" if direction is Direction.HORIZONTAL else "SOUTH"
