from __future__ import annotations

"""Tool call telemetry models.

A ``ToolCallRecord`` is created when the orchestrator issues a request, is
updated in place while the call runs, and is finalized with a response. Its
status moves only forward along ``ALLOWED_TRANSITIONS``; the record store
enforces that table.

All models here derive from ``TelemetrySchema`` so that
``model_dump(by_alias=True, mode="json")`` yields the camelCase export format
with ISO-8601 timestamps.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple
from uuid import uuid4

from pydantic import Field

from .base import TelemetrySchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    return f"tool_{int(_utc_now().timestamp() * 1000)}_{uuid4().hex[:9]}"


class ToolSource(str, Enum):
    local = "local"
    external = "external"


class RequestSource(str, Enum):
    user = "user"
    system = "system"
    auto = "auto"


class ToolCallStatus(str, Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


ALLOWED_TRANSITIONS: FrozenSet[Tuple[ToolCallStatus, ToolCallStatus]] = frozenset(
    {
        (ToolCallStatus.pending, ToolCallStatus.running),
        (ToolCallStatus.running, ToolCallStatus.completed),
        (ToolCallStatus.running, ToolCallStatus.failed),
    }
)


def can_transition(current: ToolCallStatus, target: ToolCallStatus) -> bool:
    return (current, target) in ALLOWED_TRANSITIONS


class DisplayPhase(str, Enum):
    detection = "detection"
    executing = "executing"
    completed = "completed"
    failed = "failed"


class Progress(TelemetrySchema):
    current: int = 0
    total: int = 100


class DisplayData(TelemetrySchema):
    phase: DisplayPhase
    message: str
    icon: str = "🔧"
    progress: Optional[Progress] = None


class ToolCallRequest(TelemetrySchema):
    method: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utc_now)
    message_id: Optional[str] = None
    source: RequestSource = RequestSource.auto


class ToolCallResponse(TelemetrySchema):
    result: Any = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utc_now)
    execution_time: float = 0.0
    status_code: int = 200
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ToolCallRecord(TelemetrySchema):
    id: str = Field(default_factory=new_record_id)
    tool_name: str
    source: ToolSource = ToolSource.local
    request: ToolCallRequest
    response: Optional[ToolCallResponse] = None
    status: ToolCallStatus = ToolCallStatus.pending
    display_data: Optional[DisplayData] = None

    @property
    def created_at(self) -> datetime:
        return self.request.timestamp


class ExecutionStatistics(TelemetrySchema):
    total_calls: int = 0
    completed_calls: int = 0
    failed_calls: int = 0
    running_calls: int = 0
    pending_calls: int = 0
    average_execution_time: float = 0.0
    recent_activity: List[ToolCallRecord] = Field(default_factory=list)


class RecordExport(TelemetrySchema):
    export_time: datetime = Field(default_factory=_utc_now)
    total_records: int
    statistics: ExecutionStatistics
    records: List[ToolCallRecord] = Field(default_factory=list)
