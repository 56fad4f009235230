"""
Action events for an analytics sink. Events are informational only; points never depend on them.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Protocol


@dataclass
class ActionEvent:
    action: str
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


class AnalyticsSink(Protocol):
    def record(self, event: ActionEvent) -> None:
        ...


class LoggingAnalyticsSink:
    """Default sink: writes events to the 'iman.analytics' logger."""

    def __init__(self):
        self.logger = logging.getLogger("iman.analytics")

    def record(self, event: ActionEvent) -> None:
        self.logger.info(f"action={event.action} details={event.details}")


class MemoryAnalyticsSink:
    """Keeps events in a list; handy for tests and for a presentation layer that batches uploads."""

    def __init__(self):
        self.events: List[ActionEvent] = []

    def record(self, event: ActionEvent) -> None:
        self.events.append(event)

    def actions(self) -> List[str]:
        return [e.action for e in self.events]
