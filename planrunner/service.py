from __future__ import annotations

"""High-level plan service.

``PlanService`` provides an application-friendly API for taking a plan from
an LLM to executed tool calls without wiring the validator and orchestrator
by hand.

Workflow
--------

- ``check_plan``:

  1. Validates the plan against a fresh snapshot of the registry.
  2. If the plan is invalid and auto-fix is enabled, repairs a copy and
     validates the repaired copy again.
  3. Returns the final result together with the rendered report.

- ``execute_plan``:

  1. Runs ``check_plan``.
  2. Raises ``PlanRejectedError`` when the plan is still invalid.
  3. Otherwise queues an orchestration session and waits for it.

``PlanService`` is intentionally thin: validation semantics live in
``PlanValidator`` and execution semantics in ``ToolExecutionOrchestrator``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from .planning.formatting import format_validation_result
from .planning.steps import PlanInput, coerce_steps
from .planning.validator import PlanValidator
from .runtime.errors import PlanRejectedError
from .runtime.observer import StatusObserver
from .runtime.orchestrator import ToolExecutionOrchestrator
from .schemas.plan import OrchestrationResult, PlanStep, ToolCall
from .schemas.records import RequestSource
from .schemas.validation import ValidationResult
from .tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanCheck:
    """Outcome of ``PlanService.check_plan``.

    ``steps`` is the plan that was validated last: the repaired copy when
    auto-fix changed something, otherwise the parsed input.
    """

    result: ValidationResult
    steps: List[PlanStep]
    report: str
    fixed: bool = False
    changes: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return self.result.valid


class PlanService:
    """Validate, repair and execute plans against one tool registry."""

    def __init__(
        self,
        *,
        registry: ToolRegistry,
        validator: PlanValidator,
        orchestrator: ToolExecutionOrchestrator,
    ) -> None:
        self._registry = registry
        self._validator = validator
        self._orchestrator = orchestrator

    @property
    def validator(self) -> PlanValidator:
        return self._validator

    @property
    def orchestrator(self) -> ToolExecutionOrchestrator:
        return self._orchestrator

    def check_plan(self, steps: Sequence[PlanInput], *, auto_fix: bool = True) -> PlanCheck:
        self._validator.set_tools_map(self._registry.snapshot())
        result = self._validator.validate_plan(steps)
        parsed, _ = coerce_steps(steps)

        if result.valid or not auto_fix:
            return PlanCheck(result=result, steps=parsed, report=format_validation_result(result))

        fix = self._validator.auto_fix_plan(steps)
        if not fix.fixed:
            return PlanCheck(result=result, steps=parsed, report=format_validation_result(result))

        revalidated = self._validator.validate_plan(fix.steps)
        logger.info(
            f"Auto-fix applied {len(fix.changes)} change(s); plan is "
            f"{'valid' if revalidated.valid else 'still invalid'}"
        )
        return PlanCheck(
            result=revalidated,
            steps=fix.steps,
            report=format_validation_result(revalidated),
            fixed=True,
            changes=list(fix.changes),
        )

    def to_tool_calls(self, steps: Sequence[PlanStep]) -> List[ToolCall]:
        """Convert plan steps into orchestrator input, resolving tool aliases."""
        calls: List[ToolCall] = []
        for step in steps:
            calls.append(
                ToolCall(
                    tool=self._validator.normalize_tool_name(step.tool),
                    parameters=_parameters_of(step.input),
                    step_id=step.step_id,
                )
            )
        return calls

    async def execute_plan(
        self,
        steps: Sequence[PlanInput],
        *,
        message_id: Optional[str] = None,
        observer: Optional[StatusObserver] = None,
        auto_fix: bool = True,
        request_source: RequestSource = RequestSource.auto,
    ) -> OrchestrationResult:
        """Check a plan and execute it when valid.

        Raises:
            PlanRejectedError: The plan is invalid after the optional auto-fix.
            OrchestrationError: A tool call failed; remaining calls did not run.
        """
        check = self.check_plan(steps, auto_fix=auto_fix)
        if not check.valid:
            logger.warning(f"Plan rejected:\n{check.report}")
            raise PlanRejectedError(check, check.result)

        return await self._orchestrator.execute_tool_calls_orchestration(
            self.to_tool_calls(check.steps),
            message_id=message_id,
            request_source=request_source,
            observer=observer,
        )


def _parameters_of(value: Any) -> dict:
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    return {"input": value}
