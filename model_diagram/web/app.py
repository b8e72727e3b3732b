"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from model_diagram import __version__
from model_diagram.web.api import router


def create_app() -> FastAPI:
    app = FastAPI(title="model-diagram", version=__version__)
    app.include_router(router)
    return app
