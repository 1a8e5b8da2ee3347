"""Execution runtime for validated plans.

The runtime takes an ordered list of ``ToolCall`` items and executes it with
strong guarantees:

- sessions run one at a time through ``ExecutionQueue``;
- calls inside a session run strictly in order, and the first failure aborts
  the rest;
- every call is tracked as a ``ToolCallRecord`` in ``ToolCallRecordStore``;
- progress is reported to a ``StatusObserver``.

The main entry point is ``ToolExecutionOrchestrator``.
"""

from .errors import (
    ErrorCategory,
    ErrorClassification,
    InvalidTransitionError,
    OrchestrationError,
    PlanRejectedError,
    PlanRunnerError,
    QueueClearedError,
    QueueClosedError,
    TemplateResolutionError,
    ToolExecutionError,
    ToolNotFoundError,
    classify_error,
)
from .models import OrchestratorDeps
from .observer import CollectingObserver, CompositeObserver, LoggingObserver, StatusObserver
from .orchestrator import ToolExecutionOrchestrator
from .queue import ExecutionQueue, QueueStatus
from .resolver import resolve_placeholders
from .store import ToolCallRecordStore

__all__ = [
    "ToolExecutionOrchestrator",
    "OrchestratorDeps",
    "ExecutionQueue",
    "QueueStatus",
    "ToolCallRecordStore",
    "StatusObserver",
    "LoggingObserver",
    "CollectingObserver",
    "CompositeObserver",
    "resolve_placeholders",
    "ErrorCategory",
    "ErrorClassification",
    "classify_error",
    "PlanRunnerError",
    "OrchestrationError",
    "ToolNotFoundError",
    "TemplateResolutionError",
    "ToolExecutionError",
    "InvalidTransitionError",
    "QueueClearedError",
    "QueueClosedError",
    "PlanRejectedError",
]
