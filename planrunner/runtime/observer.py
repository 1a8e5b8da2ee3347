from __future__ import annotations

"""Status observers.

The orchestrator reports progress through a ``StatusObserver``. Observers are
awaited in line with execution, so a slow observer slows the session and an
observer that raises aborts it.
"""

import logging
from typing import List, Protocol, Sequence

from ..schemas.events import (
    CompletedEvent,
    DetectionEvent,
    ExecutingEvent,
    FailedEvent,
    RecordUpdatedEvent,
    StatusEvent,
)

logger = logging.getLogger(__name__)


class StatusObserver(Protocol):
    async def notify(self, event: StatusEvent) -> None: ...


class LoggingObserver:
    """Default observer: writes each event to the module logger."""

    async def notify(self, event: StatusEvent) -> None:
        if isinstance(event, DetectionEvent):
            logger.info(f"[{event.session_id}] Detected {event.total} tool call(s): {', '.join(event.tools)}")
        elif isinstance(event, ExecutingEvent):
            logger.info(
                f"[{event.session_id}] Executing {event.tool} ({event.index + 1}/{event.total}, {event.progress}%)"
            )
        elif isinstance(event, CompletedEvent):
            logger.info(f"[{event.session_id}] Completed {event.count} tool call(s)")
        elif isinstance(event, FailedEvent):
            logger.error(f"[{event.session_id}] Failed at {event.tool or 'unknown tool'}: {event.error}")
        elif isinstance(event, RecordUpdatedEvent):
            logger.debug(f"[{event.session_id}] Record {event.record.id} is {event.record.status.value}")


class CollectingObserver:
    """Keeps every event in memory, in emission order."""

    def __init__(self) -> None:
        self.events: List[StatusEvent] = []

    async def notify(self, event: StatusEvent) -> None:
        self.events.append(event)

    def phases(self) -> List[str]:
        return [e.phase for e in self.events]

    def of_phase(self, phase: str) -> List[StatusEvent]:
        return [e for e in self.events if e.phase == phase]


class CompositeObserver:
    """Forward every event to each observer in turn."""

    def __init__(self, observers: Sequence[StatusObserver]) -> None:
        self._observers = list(observers)

    async def notify(self, event: StatusEvent) -> None:
        for observer in self._observers:
            await observer.notify(event)
