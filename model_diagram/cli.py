"""Click CLI with models, layout, and serve subcommands."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import click

from model_diagram import __version__
from model_diagram.config import RendererOptions
from model_diagram.diagram.controller import IncrementalController
from model_diagram.diagram.events import DiagramEventType
from model_diagram.models import Direction, Node
from model_diagram.parser import parse_models

_DIRECTION_CHOICES = [d.value for d in Direction]

# Estimated node box when no renderer measures it
NODE_WIDTH = 220
HEADER_HEIGHT = 40
ROW_HEIGHT = 24


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """model-diagram: Turn type declarations into a laid-out model diagram."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def models(file: Path):
    """Parse FILE and print its models as JSON."""
    parsed = parse_models(_read(file))
    click.echo(json.dumps([m.to_dict() for m in parsed], indent=2))


def _parse_pin(ctx, param, values: tuple[str, ...]) -> dict[str, tuple[float, float]]:
    pins: dict[str, tuple[float, float]] = {}
    for value in values:
        node_id, sep, coords = value.partition("=")
        x, comma, y = coords.partition(",")
        if not sep or not comma or not node_id:
            raise click.BadParameter(f"expected ID=X,Y, got {value!r}", ctx=ctx, param=param)
        try:
            pins[node_id] = (float(x), float(y))
        except ValueError:
            raise click.BadParameter(f"coordinates must be numbers: {value!r}", ctx=ctx, param=param)
    return pins


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--direction", "-d", type=click.Choice(_DIRECTION_CHOICES), help="Layout direction")
@click.option("--pin", "pins", multiple=True, callback=_parse_pin, help="Keep a node fixed: ID=X,Y")
def layout(file: Path, direction: str | None, pins: dict[str, tuple[float, float]]):
    """Run one layout pass over FILE and print nodes and edges as JSON."""
    source = _read(file)
    options = RendererOptions(direction=Direction(direction) if direction else None)

    controller = asyncio.run(_layout(source, options, pins))
    postponed = controller.events.of_type(DiagramEventType.LAYOUT_POSTPONED)
    if postponed:
        raise click.ClickException(f"Layout failed: {postponed[-1].data.get('reason')}")

    click.echo(json.dumps({
        "direction": controller.options.direction.value,
        "nodes": [_node_summary(node) for node in controller.nodes],
        "edges": [edge.to_dict() for edge in controller.edges],
    }, indent=2))


async def _layout(
    source: str,
    options: RendererOptions,
    pins: dict[str, tuple[float, float]],
) -> IncrementalController:
    controller = IncrementalController(options=options)
    try:
        controller.set_source(source)
        for node in controller.nodes:
            width, height = _estimate_size(node)
            controller.measure_node(node.id, width, height)
        for node_id, (x, y) in pins.items():
            if not controller.move_node(node_id, x, y):
                raise click.ClickException(f"Unknown model for --pin: {node_id}")
        await controller.layout_now()
    finally:
        controller.close()
    return controller


def _estimate_size(node: Node) -> tuple[float, float]:
    return NODE_WIDTH, HEADER_HEIGHT + ROW_HEIGHT * len(node.model.schema)


def _node_summary(node: Node) -> dict:
    result = {
        "id": node.id,
        "x": node.position.x,
        "y": node.position.y,
    }
    if node.size:
        result["width"] = node.size.width
        result["height"] = node.size.height
    return result


def _read(file: Path) -> str:
    try:
        return file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise click.ClickException(f"Cannot read {file}: {e}")


@cli.command()
@click.option("--port", "-p", default=8430, help="Port number")
@click.option("--host", default="127.0.0.1", help="Host address")
def serve(port: int, host: str):
    """Start the diagram web API."""
    try:
        import uvicorn
    except ImportError:
        raise click.ClickException(
            "uvicorn is required for the web API. "
            "Install with: pip install 'model-diagram[web]'"
        )

    from model_diagram.web import create_app

    click.echo(f"Starting model-diagram web API at http://{host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, log_level="info")


if __name__ == "__main__":
    cli()
