from __future__ import annotations

import pytest
from pydantic import ValidationError

from planrunner.schemas import (
    ALLOWED_TRANSITIONS,
    FailedEvent,
    PlanStep,
    RecordUpdatedEvent,
    StatusEventAdapter,
    ToolCall,
    ToolCallRecord,
    ToolCallRequest,
    ToolCallStatus,
    ValidationResult,
    can_transition,
)
from planrunner.schemas.validation import PlanValidationError, ValidationErrorKind


def test_plan_step_accepts_generator_format() -> None:
    step = PlanStep.model_validate(
        {
            "id": "step1",
            "tool": "web_search",
            "input": {"query": "x"},
            "outputSchema": {"type": "array"},
            "reason": "find sources",
            "confidence": 0.9,
        }
    )

    assert step.step_id == "step1"
    assert step.output_schema == {"type": "array"}
    assert step.to_plan_dict() == {
        "step_id": "step1",
        "tool": "web_search",
        "input": {"query": "x"},
        "outputSchema": {"type": "array"},
        "reason": "find sources",
        "status": "pending",
    }


def test_plan_step_requires_tool() -> None:
    with pytest.raises(ValidationError):
        PlanStep.model_validate({"step_id": "step1"})


def test_tool_call_rejects_unknown_keys() -> None:
    with pytest.raises(ValidationError):
        ToolCall.model_validate({"tool": "t", "params": {}})


def test_valid_is_derived_from_errors() -> None:
    error = PlanValidationError(step_id="s", kind=ValidationErrorKind.unknown_tool, message="m")

    assert ValidationResult().valid
    assert not ValidationResult(errors=[error]).valid
    assert ValidationResult(errors=[error]).model_dump()["valid"] is False


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (ToolCallStatus.pending, ToolCallStatus.running, True),
        (ToolCallStatus.running, ToolCallStatus.completed, True),
        (ToolCallStatus.running, ToolCallStatus.failed, True),
        (ToolCallStatus.pending, ToolCallStatus.completed, False),
        (ToolCallStatus.completed, ToolCallStatus.failed, False),
        (ToolCallStatus.failed, ToolCallStatus.running, False),
    ],
)
def test_status_transitions(current: ToolCallStatus, target: ToolCallStatus, allowed: bool) -> None:
    assert can_transition(current, target) is allowed
    assert ((current, target) in ALLOWED_TRANSITIONS) is allowed


def test_record_dump_uses_camel_case() -> None:
    record = ToolCallRecord(tool_name="t", request=ToolCallRequest(method="t", message_id="m"))

    dumped = record.model_dump(by_alias=True, mode="json")

    assert dumped["toolName"] == "t"
    assert dumped["request"]["messageId"] == "m"
    assert dumped["displayData"] is None
    assert ToolCallRecord.model_validate(dumped).id == record.id


def test_status_events_are_discriminated_by_phase() -> None:
    failed = StatusEventAdapter.validate_python({"phase": "failed", "session_id": "s", "error": "boom"})
    record = ToolCallRecord(tool_name="t", request=ToolCallRequest(method="t"))
    updated = StatusEventAdapter.validate_python(
        {"phase": "record_updated", "session_id": "s", "record": record.model_dump()}
    )

    assert isinstance(failed, FailedEvent)
    assert failed.error == "boom"
    assert isinstance(updated, RecordUpdatedEvent)
    assert updated.record.tool_name == "t"
