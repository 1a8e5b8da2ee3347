"""Pydantic schemas shared across planning and runtime.

- ``plan``: plan steps, runtime tool calls and orchestration results.
- ``validation``: validator errors, warnings and auto-fix results.
- ``records``: tool call telemetry records, statistics and export format.
- ``events``: status events emitted to observers.
"""

from .base import BaseSchema, TelemetrySchema
from .events import (
    CompletedEvent,
    DetectionEvent,
    ExecutingEvent,
    FailedEvent,
    RecordUpdatedEvent,
    StatusEvent,
    StatusEventAdapter,
)
from .plan import OrchestrationResult, PlanStep, StepStatus, ToolCall, ToolCallResult
from .records import (
    ALLOWED_TRANSITIONS,
    DisplayData,
    DisplayPhase,
    ExecutionStatistics,
    Progress,
    RecordExport,
    RequestSource,
    ToolCallRecord,
    ToolCallRequest,
    ToolCallResponse,
    ToolCallStatus,
    ToolSource,
    can_transition,
)
from .validation import (
    AutoFixResult,
    PlanValidationError,
    PlanValidationWarning,
    ValidationErrorKind,
    ValidationResult,
    ValidationWarningKind,
)

__all__ = [
    "BaseSchema",
    "TelemetrySchema",
    "PlanStep",
    "StepStatus",
    "ToolCall",
    "ToolCallResult",
    "OrchestrationResult",
    "AutoFixResult",
    "PlanValidationError",
    "PlanValidationWarning",
    "ValidationErrorKind",
    "ValidationResult",
    "ValidationWarningKind",
    "ALLOWED_TRANSITIONS",
    "DisplayData",
    "DisplayPhase",
    "ExecutionStatistics",
    "Progress",
    "RecordExport",
    "RequestSource",
    "ToolCallRecord",
    "ToolCallRequest",
    "ToolCallResponse",
    "ToolCallStatus",
    "ToolSource",
    "can_transition",
    "CompletedEvent",
    "DetectionEvent",
    "ExecutingEvent",
    "FailedEvent",
    "RecordUpdatedEvent",
    "StatusEvent",
    "StatusEventAdapter",
]
