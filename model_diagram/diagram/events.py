"""Notifications from a diagram controller to the rendering layer."""

from __future__ import annotations

import enum
import logging
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


class DiagramEventType(enum.Enum):
    STATE_COMMITTED = "state_committed"
    CONNECTIONS_INVALIDATED = "connections_invalidated"
    FIT_VIEW = "fit_view"
    LAYOUT_APPLIED = "layout_applied"
    LAYOUT_POSTPONED = "layout_postponed"


@dataclass
class DiagramEvent:
    event_type: DiagramEventType
    node_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": self.event_type.value,
            "timestamp": self.timestamp,
        }
        if self.node_id is not None:
            result["node_id"] = self.node_id
        if self.data:
            result["data"] = self.data
        return result


EventCallback = Callable[[DiagramEvent], None]


class DiagramEvents:
    """Publish/subscribe bus with a bounded history."""

    def __init__(self, history_size: int = 500):
        self.subscribers: dict[DiagramEventType, list[EventCallback]] = defaultdict(list)
        self.history: deque[DiagramEvent] = deque(maxlen=history_size)

    def subscribe(self, event_type: DiagramEventType, callback: EventCallback) -> None:
        self.subscribers[event_type].append(callback)

    def unsubscribe(self, event_type: DiagramEventType, callback: EventCallback) -> None:
        self.subscribers[event_type] = [
            cb for cb in self.subscribers[event_type] if cb != callback
        ]

    def publish(self, event: DiagramEvent) -> None:
        self.history.append(event)
        for callback in list(self.subscribers.get(event.event_type, [])):
            try:
                callback(event)
            except Exception:
                logger.exception("error in %s subscriber", event.event_type.value)

    def recent(self, limit: int = 100) -> list[DiagramEvent]:
        return list(self.history)[-limit:]

    def of_type(self, event_type: DiagramEventType) -> list[DiagramEvent]:
        return [e for e in self.history if e.event_type is event_type]
