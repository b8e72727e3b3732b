"""In-memory diagram sessions for the web API, no database required."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from model_diagram.diagram.controller import IncrementalController

logger = logging.getLogger(__name__)


@dataclass
class DiagramSession:
    controller: IncrementalController
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


class AppState:
    """Singleton in-memory state shared by all API routes."""

    def __init__(self):
        self.diagrams: dict[str, DiagramSession] = {}

    def add_diagram(self, session: DiagramSession) -> None:
        self.diagrams[session.id] = session

    def get_diagram(self, diagram_id: str) -> DiagramSession | None:
        return self.diagrams.get(diagram_id)

    def delete_diagram(self, diagram_id: str) -> bool:
        """Remove a diagram and cancel any layout it still has scheduled."""
        session = self.diagrams.pop(diagram_id, None)
        if not session:
            return False
        session.controller.close()
        logger.debug("diagram %s closed", diagram_id)
        return True


# Module-level singleton, shared by the routers
state = AppState()
