"""Diagram view state: element derivation, events and the incremental controller."""

from __future__ import annotations

from model_diagram.diagram.controller import IncrementalController
from model_diagram.diagram.elements import extract_model_edges, extract_model_nodes
from model_diagram.diagram.events import DiagramEvent, DiagramEvents, DiagramEventType
from model_diagram.diagram.scheduler import FrameScheduler

__all__ = [
    "DiagramEvent",
    "DiagramEventType",
    "DiagramEvents",
    "FrameScheduler",
    "IncrementalController",
    "extract_model_edges",
    "extract_model_nodes",
]
