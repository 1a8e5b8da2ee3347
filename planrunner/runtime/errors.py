from __future__ import annotations

"""Runtime exception hierarchy and failure classification.

Validation problems are never raised; they are returned as
``ValidationResult`` data. Everything in this module is raised from the
runtime side: the orchestrator, the record store and the execution queue.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from ..schemas.records import ToolCallStatus
    from ..schemas.validation import ValidationResult


class PlanRunnerError(Exception):
    pass


class OrchestrationError(PlanRunnerError):
    """Base class for failures that abort an orchestration session."""

    status_code = 500
    error_type = "orchestration_error"

    def __init__(
        self,
        message: str,
        *,
        tool_name: Optional[str] = None,
        step_id: Optional[str] = None,
        record_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.tool_name = tool_name
        self.step_id = step_id
        self.record_id = record_id


class ToolNotFoundError(OrchestrationError):
    status_code = 404
    error_type = "tool_not_found"

    def __init__(self, tool_name: str, *, step_id: Optional[str] = None, record_id: Optional[str] = None) -> None:
        super().__init__(
            f"Tool not found: '{tool_name}'",
            tool_name=tool_name,
            step_id=step_id,
            record_id=record_id,
        )


class TemplateResolutionError(OrchestrationError):
    status_code = 422
    error_type = "template_resolution"

    def __init__(
        self,
        placeholder: str,
        referenced_step: str,
        reason: str,
        *,
        available_fields: Sequence[str] = (),
        tool_name: Optional[str] = None,
        step_id: Optional[str] = None,
        record_id: Optional[str] = None,
    ) -> None:
        message = f"Cannot resolve placeholder {placeholder}: {reason}"
        if available_fields:
            message += f". Available fields: {', '.join(available_fields)}"
        super().__init__(message, tool_name=tool_name, step_id=step_id, record_id=record_id)
        self.placeholder = placeholder
        self.referenced_step = referenced_step
        self.reason = reason
        self.available_fields = list(available_fields)


class ToolExecutionError(OrchestrationError):
    """A tool raised or reported ``success=False``.

    ``str(exc)`` is the tool's own error message, unchanged, so callers can
    surface exactly what the tool said.
    """

    status_code = 500
    error_type = "tool_execution_failed"

    def __init__(
        self,
        message: str,
        *,
        tool_name: Optional[str] = None,
        step_id: Optional[str] = None,
        record_id: Optional[str] = None,
        category: Optional["ErrorCategory"] = None,
    ) -> None:
        super().__init__(message, tool_name=tool_name, step_id=step_id, record_id=record_id)
        self.category = category or classify_error(message).category


class InvalidTransitionError(PlanRunnerError):
    def __init__(self, record_id: str, current: "ToolCallStatus", target: "ToolCallStatus") -> None:
        super().__init__(
            f"Illegal status transition for record '{record_id}': {current.value} -> {target.value}"
        )
        self.record_id = record_id
        self.current = current
        self.target = target


class QueueClearedError(PlanRunnerError):
    def __init__(self) -> None:
        super().__init__("Queued orchestration session was cleared before it started")


class QueueClosedError(PlanRunnerError):
    def __init__(self) -> None:
        super().__init__("Execution queue is closed")


class PlanRejectedError(PlanRunnerError):
    """The plan is still invalid after the optional auto-fix pass."""

    def __init__(self, check: object, result: "ValidationResult") -> None:
        super().__init__(f"Plan rejected with {len(result.errors)} validation error(s)")
        self.check = check
        self.result = result


class ErrorCategory(str, Enum):
    network = "network"
    permission = "permission"
    parameter = "parameter"
    general = "general"


@dataclass(frozen=True)
class ErrorClassification:
    category: ErrorCategory
    hint: str


_CLASSIFIERS: Tuple[Tuple[ErrorCategory, Tuple[str, ...]], ...] = (
    (ErrorCategory.network, ("econnrefused", "enotfound", "timeout", "timed out", "connection")),
    (ErrorCategory.permission, ("permission", "unauthorized", "forbidden")),
    (ErrorCategory.parameter, ("invalid", "parameter")),
)

_HINTS = {
    ErrorCategory.network: "Network problem: check the connection and that the remote service is reachable.",
    ErrorCategory.permission: "Permission problem: check credentials and the tool's access rights.",
    ErrorCategory.parameter: "Parameter problem: check the values passed to the tool.",
    ErrorCategory.general: "Tool execution failed; check the tool's configuration and try again.",
}


def classify_error(message: str) -> ErrorClassification:
    """Bucket a failure message for user-facing messaging.

    The classification never changes control flow; it only picks a hint.
    """
    lowered = (message or "").lower()
    for category, needles in _CLASSIFIERS:
        if any(n in lowered for n in needles):
            return ErrorClassification(category=category, hint=_HINTS[category])
    return ErrorClassification(category=ErrorCategory.general, hint=_HINTS[ErrorCategory.general])
