from __future__ import annotations

from typing import Any, List, Mapping, Sequence, Tuple, Union

from ..schemas.plan import PlanStep
from ..schemas.validation import PlanValidationError, ValidationErrorKind

PlanInput = Union[PlanStep, Mapping[str, Any]]


def _fallback_id(raw: Any, position: int) -> str:
    if isinstance(raw, Mapping):
        ident = raw.get("step_id") or raw.get("id")
        if ident:
            return str(ident)
    return f"step{position + 1}"


def coerce_step(raw: PlanInput, position: int) -> PlanStep:
    """Build a detached ``PlanStep`` copy from a model or a generator dict.

    Raises ``ValueError`` (pydantic ``ValidationError``) for malformed input.
    """
    if isinstance(raw, PlanStep):
        step = raw.model_copy(deep=True)
    else:
        step = PlanStep.model_validate(raw)
        step = step.model_copy(deep=True)
    if not step.step_id:
        step = step.model_copy(update={"step_id": f"step{position + 1}"})
    return step


def coerce_steps(raw_steps: Sequence[Any]) -> Tuple[List[PlanStep], List[PlanValidationError]]:
    """Parse every entry; malformed entries become ``schema_pattern_violation`` errors."""
    steps: List[PlanStep] = []
    errors: List[PlanValidationError] = []
    for position, raw in enumerate(raw_steps):
        try:
            steps.append(coerce_step(raw, position))
        except (ValueError, TypeError) as exc:
            errors.append(
                PlanValidationError(
                    step_id=_fallback_id(raw, position),
                    kind=ValidationErrorKind.schema_pattern_violation,
                    message=f"Step at position {position + 1} is malformed: {exc}",
                    suggestion="Each step needs at least 'step_id' and 'tool'",
                )
            )
    return steps, errors
