from __future__ import annotations

"""Plan validation result models.

Validation never raises: every problem found in a plan is reported as data so
callers can block execution, ask the generator for a new plan, or run the
auto-fixer and re-validate.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field, computed_field

from .base import BaseSchema
from .plan import PlanStep


class ValidationErrorKind(str, Enum):
    missing_step = "missing_step"
    invalid_field = "invalid_field"
    missing_dependency = "missing_dependency"
    type_mismatch = "type_mismatch"
    schema_pattern_violation = "schema_pattern_violation"
    unknown_tool = "unknown_tool"


class ValidationWarningKind(str, Enum):
    unknown_tool = "unknown_tool"
    unknown_field = "unknown_field"
    inefficient_pattern = "inefficient_pattern"


class PlanValidationError(BaseSchema):
    step_id: str
    kind: ValidationErrorKind
    message: str
    suggestion: Optional[str] = None
    field: Optional[str] = None


class PlanValidationWarning(BaseSchema):
    step_id: str
    kind: ValidationWarningKind
    message: str


class ValidationResult(BaseSchema):
    """Outcome of a single ``PlanValidator.validate_plan`` pass.

    ``valid`` is derived from ``errors`` and cannot be set independently;
    warnings never affect validity.
    """

    errors: List[PlanValidationError] = Field(default_factory=list)
    warnings: List[PlanValidationWarning] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def valid(self) -> bool:
        return not self.errors

    def errors_for(self, step_id: str) -> List[PlanValidationError]:
        return [e for e in self.errors if e.step_id == step_id]


class AutoFixResult(BaseSchema):
    fixed: bool
    steps: List[PlanStep] = Field(default_factory=list)
    changes: List[str] = Field(default_factory=list)
