from __future__ import annotations

"""Best-effort repair of template references.

Two rewrites are applied to a deep copy of the plan:

1. the legacy ``.output`` infix is removed where doing so keeps the meaning
   (``{{step1.output.content}}`` → ``{{step1.content}}``);
2. a first-level field that the referenced output does not declare is
   replaced by that output's preferred field
   (``{{step1.results}}`` → ``{{step1.articles}}``).

Running the fixer on its own output makes no further changes. It is a
heuristic: the repaired plan must be validated again before it runs.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..schemas.plan import PlanStep
from ..schemas.validation import AutoFixResult
from .shapes import field_names, schema_type, standard_field
from .steps import PlanInput, coerce_steps
from .templates import TemplateReference, rewrite_references

logger = logging.getLogger(__name__)

SchemaLookup = Callable[[PlanStep], Optional[Mapping[str, Any]]]


def _strip_output_infix(step: PlanStep, changes: List[str]) -> PlanStep:
    def _rewrite(ref: TemplateReference) -> Optional[str]:
        if not ref.redundant_infix:
            return None
        fixed = ref.render(keep_infix=False)
        changes.append(f"{step.step_id}: {ref.raw} -> {fixed} (removed redundant '.output')")
        return fixed

    new_input = rewrite_references(step.input, _rewrite)
    return step.model_copy(update={"input": new_input})


def _replace_invalid_fields(
    step: PlanStep,
    by_id: Mapping[str, PlanStep],
    schema_for: SchemaLookup,
    changes: List[str],
) -> PlanStep:
    def _rewrite(ref: TemplateReference) -> Optional[str]:
        segment = ref.first_segment
        producer = by_id.get(ref.step_id)
        if producer is None or not isinstance(segment, str):
            return None
        schema = schema_for(producer)
        if schema_type(schema) != "object":
            return None
        available = field_names(schema)
        preferred = standard_field(schema)
        if not available or segment in available or preferred is None:
            return None
        fixed = ref.render(path=(preferred,) + ref.path[1:], keep_infix=False)
        changes.append(
            f"{step.step_id}: {ref.raw} -> {fixed} "
            f"(field '{segment}' does not exist, using standard field '{preferred}')"
        )
        return fixed

    new_input = rewrite_references(step.input, _rewrite)
    return step.model_copy(update={"input": new_input})


def auto_fix_plan(steps: Sequence[PlanInput], *, schema_for: SchemaLookup) -> AutoFixResult:
    """Repair field references in a copy of ``steps``.

    Args:
        steps: The plan to repair. It is never mutated.
        schema_for: Returns the output schema to check references against, or
            ``None`` when the step's output should not be touched.

    Returns:
        AutoFixResult: ``fixed`` is true when at least one rewrite happened.
    """
    plan, malformed = coerce_steps(steps)
    if malformed:
        logger.warning(f"Auto-fix skipped: {len(malformed)} malformed step(s) in plan")
        return AutoFixResult(fixed=False, steps=plan, changes=[])

    changes: List[str] = []
    plan = [_strip_output_infix(step, changes) for step in plan]

    by_id: Dict[str, PlanStep] = {}
    for step in plan:
        by_id.setdefault(step.step_id, step)
    plan = [_replace_invalid_fields(step, by_id, schema_for, changes) for step in plan]

    for change in changes:
        logger.info(f"Auto-fix: {change}")
    return AutoFixResult(fixed=bool(changes), steps=plan, changes=changes)
