"""Web API for interactive diagram sessions."""

from model_diagram.web.app import create_app

__all__ = ["create_app"]
