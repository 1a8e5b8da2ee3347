from __future__ import annotations

"""Structured status events emitted by the orchestrator.

Events are consumed by an external presentation layer through a
``StatusObserver``. They are discriminated on ``phase`` so a consumer can
parse any event with ``StatusEventAdapter.validate_python(payload)``.
"""

from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from .base import BaseSchema
from .records import ToolCallRecord


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _EventBase(BaseSchema):
    session_id: str
    message_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utc_now)


class DetectionEvent(_EventBase):
    phase: Literal["detection"] = "detection"
    total: int
    tools: List[str] = Field(default_factory=list)


class ExecutingEvent(_EventBase):
    phase: Literal["executing"] = "executing"
    tool: str
    step_id: str
    index: int
    total: int
    progress: int


class CompletedEvent(_EventBase):
    phase: Literal["completed"] = "completed"
    count: int
    record_ids: List[str] = Field(default_factory=list)


class FailedEvent(_EventBase):
    phase: Literal["failed"] = "failed"
    error: str
    tool: Optional[str] = None
    step_id: Optional[str] = None
    hint: Optional[str] = None


class RecordUpdatedEvent(_EventBase):
    phase: Literal["record_updated"] = "record_updated"
    record: ToolCallRecord


StatusEvent = Annotated[
    Union[DetectionEvent, ExecutingEvent, CompletedEvent, FailedEvent, RecordUpdatedEvent],
    Field(discriminator="phase"),
]

StatusEventAdapter: TypeAdapter[StatusEvent] = TypeAdapter(StatusEvent)
