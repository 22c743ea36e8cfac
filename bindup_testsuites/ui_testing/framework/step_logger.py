"""
================================================================================
Step Logger
================================================================================

Structured step events shared by every engine component.

Each event has the shape consumed by reporting tooling:

    {"phase": str, "step": str, "status": "start|success|warning|error",
     "detail": str | None, "timestamp": ISO-8601 str}

Events are written to loguru (fields bound for sinks that want them) and kept
in an in-memory audit trail. Components that share a trail are created with
`StepLogger.child(phase)`.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from loguru import logger


class StepStatus(str, Enum):
    START = "start"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# loguru level and console icon per status
_LEVELS: Dict[StepStatus, str] = {
    StepStatus.START: "DEBUG",
    StepStatus.SUCCESS: "SUCCESS",
    StepStatus.WARNING: "WARNING",
    StepStatus.ERROR: "ERROR",
}

_ICONS: Dict[StepStatus, str] = {
    StepStatus.START: "🔄",
    StepStatus.SUCCESS: "✅",
    StepStatus.WARNING: "⚠️",
    StepStatus.ERROR: "❌",
}


@dataclass(frozen=True)
class StepEvent:
    """One audit-trail entry."""
    phase: str
    step: str
    status: StepStatus
    detail: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        if self.detail is None:
            data.pop("detail")
        return data


StepSubscriber = Callable[[StepEvent], None]


class StepLogger:
    """
    Emits step events for one phase.

    Usage:
        >>> steps = StepLogger("resolver")
        >>> steps.start("Trying primary selector: #save")
        >>> steps.success("Primary selector matched", "1 element")
        >>> [e.to_dict()["status"] for e in steps.events]
        ['start', 'success']
    """

    def __init__(
        self,
        phase: str,
        events: Optional[List[StepEvent]] = None,
        subscribers: Optional[List[StepSubscriber]] = None,
    ):
        self.phase = phase
        self.events: List[StepEvent] = events if events is not None else []
        self._subscribers: List[StepSubscriber] = subscribers if subscribers is not None else []

    def child(self, phase: str) -> "StepLogger":
        """Logger for another phase writing to the same trail and subscribers."""
        return StepLogger(phase, events=self.events, subscribers=self._subscribers)

    def subscribe(self, subscriber: StepSubscriber) -> None:
        self._subscribers.append(subscriber)

    def log_step(
        self,
        step: str,
        status: StepStatus,
        detail: Optional[str] = None,
    ) -> StepEvent:
        status = StepStatus(status)
        event = StepEvent(phase=self.phase, step=step, status=status, detail=detail)
        self.events.append(event)

        message = f"{_ICONS[status]} [{self.phase}] {step}"
        if detail:
            message += f" - {detail}"
        logger.bind(phase=self.phase, step=step, status=status.value).log(
            _LEVELS[status], message
        )

        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception as e:
                logger.warning(f"Step subscriber {subscriber!r} failed: {e}")
        return event

    def start(self, step: str, detail: Optional[str] = None) -> StepEvent:
        return self.log_step(step, StepStatus.START, detail)

    def success(self, step: str, detail: Optional[str] = None) -> StepEvent:
        return self.log_step(step, StepStatus.SUCCESS, detail)

    def warning(self, step: str, detail: Optional[str] = None) -> StepEvent:
        return self.log_step(step, StepStatus.WARNING, detail)

    def error(self, step: str, detail: Optional[str] = None) -> StepEvent:
        return self.log_step(step, StepStatus.ERROR, detail)

    def recent(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Last `limit` events as dictionaries (for report attachments)."""
        return [event.to_dict() for event in self.events[-limit:]]


__all__ = [
    "StepEvent",
    "StepLogger",
    "StepStatus",
    "StepSubscriber",
]
