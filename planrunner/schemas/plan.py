from __future__ import annotations

"""Plan and tool call models.

A *plan* is the ordered list of ``PlanStep`` items produced upstream by an
LLM. Steps are loose by nature: the generator may emit ``id`` instead of
``step_id`` or carry extra keys, so ``PlanStep`` accepts both and ignores
unknown keys instead of rejecting the whole plan.

``ToolCall`` is the narrower runtime shape consumed by the orchestrator once a
plan has been validated (and possibly auto-fixed).
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, model_validator

from .base import BaseSchema


class StepStatus(str, Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"
    skipped = "skipped"


class PlanStep(BaseSchema):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    step_id: str = ""
    tool: str
    input: Any = None
    output_schema: Optional[Dict[str, Any]] = Field(default=None, alias="outputSchema")
    reason: Optional[str] = None
    status: StepStatus = StepStatus.pending

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("step_id") and data.get("id"):
            data = dict(data)
            data["step_id"] = str(data.pop("id"))
        return data

    def to_plan_dict(self) -> Dict[str, Any]:
        """Dump in the wire format used by plan generators."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ToolCall(BaseSchema):
    tool: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    step_id: Optional[str] = None


class ToolCallResult(BaseSchema):
    step_id: str
    tool: str
    record_id: str
    result: Any = None


class OrchestrationResult(BaseSchema):
    session_id: str
    results: List[ToolCallResult] = Field(default_factory=list)
    record_ids: List[str] = Field(default_factory=list)
