"""
Observer hooks for decision and turn events.

Components emit events through a tracer instead of printing, so tests can
record justifications and production code can route them to structlog.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from telemetry.logging_config import get_logger


@dataclass
class TraceEvent:
    name: str
    fields: Dict[str, Any] = field(default_factory=dict)


class DecisionTracer:
    """Base tracer: receives named events with keyword fields. Ignores everything."""

    def emit(self, event: str, **fields: Any) -> None:
        pass


class NullTracer(DecisionTracer):
    pass


class RecordingTracer(DecisionTracer):
    """Keeps every event in memory."""

    def __init__(self):
        self.events: List[TraceEvent] = []

    def emit(self, event: str, **fields: Any) -> None:
        self.events.append(TraceEvent(event, dict(fields)))

    def named(self, event: str) -> List[TraceEvent]:
        return [e for e in self.events if e.name == event]

    def last(self, event: str) -> Optional[TraceEvent]:
        matching = self.named(event)
        return matching[-1] if matching else None


class LoggingTracer(DecisionTracer):
    """Forwards events to a structlog logger at debug level."""

    def __init__(self, logger_name: str = "decisions", **context: Any):
        self.logger = get_logger(logger_name).bind(**context)

    def emit(self, event: str, **fields: Any) -> None:
        self.logger.debug(event, **fields)
