"""Layered layout service and the engine that drives it."""

from __future__ import annotations

from model_diagram.layout.engine import LayoutEngine, LayoutService, port_id
from model_diagram.layout.layered import LayeredLayout, LayoutError

__all__ = [
    "LayeredLayout",
    "LayoutEngine",
    "LayoutError",
    "LayoutService",
    "port_id",
]
