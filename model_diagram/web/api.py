"""Diagram API: sessions, source edits, node interaction, options, layout, events."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from model_diagram.config import RendererOptions
from model_diagram.diagram.controller import IncrementalController
from model_diagram.models import Direction
from model_diagram.web.state import DiagramSession, state

router = APIRouter(prefix="/api/diagrams")

DirectionName = Literal["horizontal", "vertical"]
ThemeName = Literal["light", "dark"]


class CreateDiagramRequest(BaseModel):
    source: str = ""
    direction: DirectionName | None = None
    auto_fit_view: bool = True
    theme: ThemeName | None = None
    enable_minimap: bool = True


class SourceRequest(BaseModel):
    source: str


class MeasureRequest(BaseModel):
    width: float
    height: float


class MoveRequest(BaseModel):
    x: float
    y: float


class OptionsRequest(BaseModel):
    direction: DirectionName | None = None
    auto_fit_view: bool | None = None
    theme: ThemeName | None = None
    enable_minimap: bool | None = None


def _get_session(diagram_id: str) -> DiagramSession:
    session = state.get_diagram(diagram_id)
    if not session:
        raise HTTPException(404, "Diagram not found")
    return session


def _snapshot(session: DiagramSession) -> dict:
    return {"id": session.id, **session.controller.view_state()}


@router.post("")
async def create_diagram(req: CreateDiagramRequest):
    options = RendererOptions(
        direction=Direction(req.direction) if req.direction else None,
        auto_fit_view=req.auto_fit_view,
        theme=req.theme or "",
        enable_minimap=req.enable_minimap,
    )
    session = DiagramSession(controller=IncrementalController(options=options))
    session.controller.set_source(req.source)
    state.add_diagram(session)
    return _snapshot(session)


@router.get("/{diagram_id}")
async def get_diagram(diagram_id: str):
    return _snapshot(_get_session(diagram_id))


@router.put("/{diagram_id}/source")
async def replace_source(diagram_id: str, req: SourceRequest):
    session = _get_session(diagram_id)
    models = session.controller.set_source(req.source)
    return {
        "models": [m.to_dict() for m in models],
        **_snapshot(session),
    }


@router.post("/{diagram_id}/nodes/{node_id}/measure")
async def measure_node(diagram_id: str, node_id: str, req: MeasureRequest):
    session = _get_session(diagram_id)
    if not session.controller.measure_node(node_id, req.width, req.height):
        raise HTTPException(404, "Node not found")
    return _snapshot(session)


@router.post("/{diagram_id}/nodes/{node_id}/move")
async def move_node(diagram_id: str, node_id: str, req: MoveRequest):
    session = _get_session(diagram_id)
    if not session.controller.move_node(node_id, req.x, req.y):
        raise HTTPException(404, "Node not found")
    return _snapshot(session)


@router.post("/{diagram_id}/viewport")
async def viewport_interaction(diagram_id: str):
    """The user panned or zoomed by hand."""
    session = _get_session(diagram_id)
    session.controller.notice_viewport_interaction()
    return {"auto_fit_view": session.controller.options.auto_fit_view}


@router.patch("/{diagram_id}/options")
async def update_options(diagram_id: str, req: OptionsRequest):
    session = _get_session(diagram_id)
    controller = session.controller
    options = controller.options

    if req.direction is not None and Direction(req.direction) is not options.direction:
        controller.toggle_direction()
    if req.auto_fit_view is not None and req.auto_fit_view != options.auto_fit_view:
        controller.toggle_auto_fit()
    if req.theme is not None:
        options.theme = req.theme
    if req.enable_minimap is not None:
        options.enable_minimap = req.enable_minimap

    return _snapshot(session)


@router.post("/{diagram_id}/layout")
async def run_layout(diagram_id: str):
    """Lay the diagram out now instead of on the next frame."""
    session = _get_session(diagram_id)
    await session.controller.layout_now()
    return _snapshot(session)


@router.get("/{diagram_id}/events")
async def get_events(diagram_id: str, limit: int = 100):
    session = _get_session(diagram_id)
    return {
        "id": session.id,
        "events": [e.to_dict() for e in session.controller.events.recent(limit)],
    }


@router.delete("/{diagram_id}")
async def delete_diagram(diagram_id: str):
    if not state.delete_diagram(diagram_id):
        raise HTTPException(404, "Diagram not found")
    return {"deleted": diagram_id}
