from __future__ import annotations

"""Static plan validation.

``PlanValidator`` checks a candidate plan before anything runs. It works on a
tool snapshot injected at construction time (or replaced through
``set_tools_map``), so two validators with different catalogs can run side by
side.

For every step the following checks run and accumulate; none of them stops
the others:

1. tool alias normalization (``create`` → ``create_file``);
2. output schema shape (type object/array/string or a combinator, objects
   declare properties);
3. template references (the referenced step exists and runs earlier, the
   first field exists on an object output, no re-selection of a list output);
4. input/output type compatibility for placeholder-fed inputs;
5. URL-list producers are consumed by a later URL consumer step;
6. the tool exists in the snapshot;
7. a tool without a published output schema gets a warning.

Tools tagged ``source="external"`` skip checks 2, 4, 5 and 7, and references
*to* their output skip the field checks of 3, because third-party schemas are
not reliable.

Validation never raises. ``valid`` is true exactly when there are no errors.
"""

import difflib
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..core.config import ValidatorConfig
from ..schemas.plan import PlanStep
from ..schemas.records import ToolSource
from ..schemas.validation import (
    AutoFixResult,
    PlanValidationError,
    PlanValidationWarning,
    ValidationErrorKind,
    ValidationResult,
    ValidationWarningKind,
)
from ..tools.base import ToolDescriptor
from ..tools.builtin import DEFAULT_TOOL_ALIASES, GENERATE_CONTENT_TOOL
from ..tools.registry import ToolsMap
from .autofix import auto_fix_plan
from .classifiers import UrlListClassifier
from .shapes import (
    ARRAY_FIELD_NAMES,
    VALID_OUTPUT_TYPES,
    field_names,
    is_combinator,
    produced_type,
    properties_of,
    schema_type,
    standard_field,
)
from .steps import PlanInput, coerce_steps
from .templates import PathToken, TemplateReference, find_references, references_in_string, whole_reference

logger = logging.getLogger(__name__)


def _types_compatible(expected: str, actual: str) -> bool:
    if expected == actual:
        return True
    # Structured values are serialized when embedded in text.
    if expected == "string" and actual in ("object", "array"):
        return True
    return expected == "number" and actual == "integer"


def _undeclared_nested_field(schema: Optional[Mapping[str, Any]], path: Sequence[PathToken]) -> Optional[str]:
    """Return the first nested field name missing from a declared ``properties`` map."""
    current: Any = schema
    for token in path:
        if not isinstance(current, Mapping):
            return None
        if isinstance(token, int):
            if schema_type(current) != "array":
                return None
            current = current.get("items")
            continue
        props = properties_of(current)
        if not props:
            return None
        if token not in props:
            return token
        current = props[token]
    return None


class PlanValidator:
    """Validate plans against a tool snapshot.

    Args:
        tools: Snapshot of registered tools keyed by name. ``None`` disables the
            tool existence check.
        config: Consumer and content generation tool names.
        classifier: URL-list producer rules. Defaults to the built-in lists with
            ``config.url_consumer_tool`` as consumer.
        aliases: Tool name aliases. Defaults to ``DEFAULT_TOOL_ALIASES``.
    """

    def __init__(
        self,
        tools: Optional[ToolsMap] = None,
        *,
        config: Optional[ValidatorConfig] = None,
        classifier: Optional[UrlListClassifier] = None,
        aliases: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._config = config if config is not None else ValidatorConfig()
        self._tools: Optional[Dict[str, ToolDescriptor]] = None
        self.set_tools_map(tools)
        self._classifier = (
            classifier if classifier is not None else UrlListClassifier(consumer=self._config.url_consumer_tool)
        )
        self._aliases: Dict[str, str] = dict(DEFAULT_TOOL_ALIASES if aliases is None else aliases)

    # ------------------------------------------------------------------
    # Catalog access
    # ------------------------------------------------------------------

    def set_tools_map(self, tools: Optional[ToolsMap]) -> None:
        """Replace the tool snapshot used by later validations."""
        self._tools = dict(tools) if tools is not None else None
        logger.debug(f"Validator tool snapshot set: {len(self._tools) if self._tools is not None else 'none'}")

    @property
    def classifier(self) -> UrlListClassifier:
        return self._classifier

    @property
    def consumer_tool(self) -> str:
        return self._classifier.consumer

    @property
    def content_tool(self) -> str:
        return self._config.content_generation_tool

    def normalize_tool_name(self, name: str) -> str:
        target = self._aliases.get(name)
        if target and self._tools is not None and target in self._tools:
            return target
        return name

    def normalize_step(self, step: PlanStep) -> PlanStep:
        canonical = self.normalize_tool_name(step.tool)
        if canonical == step.tool:
            return step
        logger.debug(f"Normalized tool alias for {step.step_id}: {step.tool} -> {canonical}")
        return step.model_copy(update={"tool": canonical})

    def descriptor(self, name: str) -> Optional[ToolDescriptor]:
        if self._tools is not None and name in self._tools:
            return self._tools[name]
        if name == self.content_tool:
            return GENERATE_CONTENT_TOOL
        return None

    def is_external(self, name: str) -> bool:
        desc = self.descriptor(name)
        return desc is not None and getattr(desc, "source", ToolSource.local) == ToolSource.external

    def output_schema_for(self, step: PlanStep) -> Optional[Mapping[str, Any]]:
        """Schema of a step's output: the tool's published one, else the plan's declaration."""
        desc = self.descriptor(self.normalize_tool_name(step.tool))
        published = getattr(desc, "output_schema", None) if desc is not None else None
        return published or step.output_schema

    def _checkable_schema_for(self, step: PlanStep) -> Optional[Mapping[str, Any]]:
        if self.is_external(self.normalize_tool_name(step.tool)):
            return None
        return self.output_schema_for(step)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate_plan(self, steps: Sequence[PlanInput]) -> ValidationResult:
        parsed, errors = coerce_steps(steps)
        warnings: List[PlanValidationWarning] = []
        plan = [self.normalize_step(s) for s in parsed]

        order: Dict[str, int] = {}
        for idx, step in enumerate(plan):
            if step.step_id in order:
                errors.append(
                    PlanValidationError(
                        step_id=step.step_id,
                        kind=ValidationErrorKind.schema_pattern_violation,
                        message=f"Step id '{step.step_id}' is used more than once",
                        suggestion="Give every step a unique step_id",
                        field="step_id",
                    )
                )
                continue
            order[step.step_id] = idx

        for idx, step in enumerate(plan):
            external = self.is_external(step.tool)
            errors.extend(self._check_tool_exists(step))
            if not external:
                errors.extend(self._check_output_schema(step))
            ref_errors, ref_warnings = self._check_references(step, idx, plan, order)
            errors.extend(ref_errors)
            warnings.extend(ref_warnings)
            if not external:
                errors.extend(self._check_types(step, idx, plan, order))
                errors.extend(self._check_dependency(step, idx, plan))
                warnings.extend(self._check_schema_available(step))

        suggestions: List[str] = []
        if errors:
            suggestions.append(f"Found {len(errors)} error(s); fix them before executing the plan")
        if warnings:
            suggestions.append(f"Found {len(warnings)} warning(s); they may affect execution quality")

        result = ValidationResult(errors=errors, warnings=warnings, suggestions=suggestions)
        if result.valid:
            logger.info(f"Plan validated: {len(plan)} step(s), {len(warnings)} warning(s)")
        else:
            logger.warning(
                f"Plan validation failed: {len(errors)} error(s), {len(warnings)} warning(s) across {len(plan)} step(s)"
            )
        return result

    def auto_fix_plan(self, steps: Sequence[PlanInput]) -> AutoFixResult:
        """Best-effort repair of field references; always re-validate the result."""
        return auto_fix_plan(steps, schema_for=self._checkable_schema_for)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_tool_exists(self, step: PlanStep) -> List[PlanValidationError]:
        if self._tools is None or step.tool == self.content_tool or step.tool in self._tools:
            return []
        candidates = list(self._tools) + [self.content_tool]
        close = difflib.get_close_matches(step.tool, candidates, n=1)
        suggestion = (
            f"Did you mean '{close[0]}'?" if close else f"Use a registered tool or '{self.content_tool}'"
        )
        return [
            PlanValidationError(
                step_id=step.step_id,
                kind=ValidationErrorKind.unknown_tool,
                message=f"Tool '{step.tool}' is not registered",
                suggestion=suggestion,
                field="tool",
            )
        ]

    def _check_output_schema(self, step: PlanStep) -> List[PlanValidationError]:
        schema = step.output_schema
        if schema is None:
            return [
                PlanValidationError(
                    step_id=step.step_id,
                    kind=ValidationErrorKind.schema_pattern_violation,
                    message=f"Step '{step.step_id}' ({step.tool}) does not declare an outputSchema",
                    suggestion='Declare an outputSchema such as {"type": "object", "properties": {...}}',
                    field="outputSchema",
                )
            ]
        if is_combinator(schema):
            return []
        kind = schema.get("type")
        if kind not in VALID_OUTPUT_TYPES:
            return [
                PlanValidationError(
                    step_id=step.step_id,
                    kind=ValidationErrorKind.schema_pattern_violation,
                    message=f"outputSchema.type '{kind}' is not one of {', '.join(VALID_OUTPUT_TYPES)}",
                    suggestion="Use object, array or string, or combine schemas with anyOf/oneOf/allOf",
                    field="outputSchema.type",
                )
            ]
        if kind == "object" and not properties_of(schema):
            return [
                PlanValidationError(
                    step_id=step.step_id,
                    kind=ValidationErrorKind.schema_pattern_violation,
                    message=f"Object outputSchema of step '{step.step_id}' declares no properties",
                    suggestion="List the fields later steps will reference under outputSchema.properties",
                    field="outputSchema.properties",
                )
            ]
        return []

    def _check_references(
        self,
        step: PlanStep,
        idx: int,
        plan: List[PlanStep],
        order: Mapping[str, int],
    ) -> Tuple[List[PlanValidationError], List[PlanValidationWarning]]:
        errors: List[PlanValidationError] = []
        warnings: List[PlanValidationWarning] = []
        for ref in find_references(step.input):
            ref_idx = order.get(ref.step_id)
            if ref_idx is None:
                errors.append(
                    PlanValidationError(
                        step_id=step.step_id,
                        kind=ValidationErrorKind.missing_step,
                        message=f"{ref.raw} references step '{ref.step_id}', which is not in the plan",
                        suggestion=f"Available steps: {', '.join(order) or '(none)'}",
                        field=ref.raw,
                    )
                )
                continue
            if ref_idx >= idx:
                earlier = [s.step_id for s in plan[:idx]]
                errors.append(
                    PlanValidationError(
                        step_id=step.step_id,
                        kind=ValidationErrorKind.missing_step,
                        message=f"{ref.raw} references step '{ref.step_id}', which does not run before '{step.step_id}'",
                        suggestion=f"Reference an earlier step: {', '.join(earlier) or '(none)'}",
                        field=ref.raw,
                    )
                )
                continue

            if ref.redundant_infix:
                warnings.append(
                    PlanValidationWarning(
                        step_id=step.step_id,
                        kind=ValidationWarningKind.inefficient_pattern,
                        message=f"{ref.raw} uses the legacy '.output' infix; write {ref.render(keep_infix=False)}",
                    )
                )

            producer = plan[ref_idx]
            if self.is_external(producer.tool):
                continue
            found_error, found_warning = self._check_reference_field(step, ref, producer)
            if found_error is not None:
                errors.append(found_error)
            if found_warning is not None:
                warnings.append(found_warning)
        return errors, warnings

    def _check_reference_field(
        self,
        step: PlanStep,
        ref: TemplateReference,
        producer: PlanStep,
    ) -> Tuple[Optional[PlanValidationError], Optional[PlanValidationWarning]]:
        segment = ref.first_segment
        if not isinstance(segment, str):
            return None, None
        schema = self.output_schema_for(producer)
        kind = schema_type(schema)

        if kind == "array" and segment in ARRAY_FIELD_NAMES:
            whole = "{{" + ref.step_id + "}}"
            return (
                PlanValidationError(
                    step_id=step.step_id,
                    kind=ValidationErrorKind.invalid_field,
                    message=(
                        f"{ref.raw} selects '{segment}', but the output of {ref.step_id} "
                        f"({producer.tool}) is already an array"
                    ),
                    suggestion=f"Use {whole} to pass the whole list",
                    field=segment,
                ),
                None,
            )

        if kind == "object":
            available = field_names(schema)
            if available and segment not in available:
                preferred = standard_field(schema)
                fixed = ref.render(path=(preferred,) + ref.path[1:], keep_infix=False) if preferred else None
                return (
                    PlanValidationError(
                        step_id=step.step_id,
                        kind=ValidationErrorKind.invalid_field,
                        message=(
                            f"Field '{segment}' does not exist in the output of {ref.step_id} ({producer.tool}). "
                            f"Available fields: {', '.join(available)}"
                        ),
                        suggestion=f"Use {fixed} instead" if fixed else None,
                        field=segment,
                    ),
                    None,
                )
            nested = _undeclared_nested_field(schema, ref.path)
            if nested is not None:
                return None, PlanValidationWarning(
                    step_id=step.step_id,
                    kind=ValidationWarningKind.unknown_field,
                    message=f"{ref.raw}: field '{nested}' is not declared in the output of {ref.step_id}",
                )

        if kind == "string":
            return None, PlanValidationWarning(
                step_id=step.step_id,
                kind=ValidationWarningKind.unknown_field,
                message=(
                    f"{ref.raw}: the output of {ref.step_id} is plain text, "
                    f"field '{segment}' can only be read if the text is JSON"
                ),
            )
        return None, None

    def _check_types(
        self,
        step: PlanStep,
        idx: int,
        plan: List[PlanStep],
        order: Mapping[str, int],
    ) -> List[PlanValidationError]:
        if not isinstance(step.input, Mapping):
            return []
        desc = self.descriptor(step.tool)
        inputs = properties_of(getattr(desc, "input_schema", None) if desc is not None else None)
        if not inputs:
            return []

        errors: List[PlanValidationError] = []
        for key, value in step.input.items():
            if not isinstance(value, str) or key not in inputs:
                continue
            refs = references_in_string(value)
            if not refs:
                continue
            expected = schema_type(inputs[key])
            if expected is None:
                continue

            ref = whole_reference(value)
            if ref is None:
                actual: Optional[str] = "string"
                ref = refs[0]
            else:
                ref_idx = order.get(ref.step_id)
                if ref_idx is None or ref_idx >= idx:
                    continue
                producer = plan[ref_idx]
                if self.is_external(producer.tool):
                    continue
                actual = produced_type(self.output_schema_for(producer), ref.path)
            if actual is None or _types_compatible(expected, actual):
                continue

            errors.append(
                PlanValidationError(
                    step_id=step.step_id,
                    kind=ValidationErrorKind.type_mismatch,
                    message=f"Input '{key}' of {step.tool} expects {expected}, but {ref.raw} provides {actual}",
                    suggestion=f"Reference a field of type {expected}, or pass the value through {self.content_tool}",
                    field=key,
                )
            )
        return errors

    def _check_dependency(self, step: PlanStep, idx: int, plan: List[PlanStep]) -> List[PlanValidationError]:
        schema = self.output_schema_for(step)
        if not self._classifier.is_producer(step.tool, schema, ToolSource.local):
            return []
        consumer = self._classifier.consumer
        for later in plan[idx + 1 :]:
            if later.tool == consumer and any(r.step_id == step.step_id for r in find_references(later.input)):
                return []

        preferred = standard_field(schema) if schema_type(schema) == "object" else None
        ref = "{{" + step.step_id + (f".{preferred}" if preferred else "") + "}}"
        return [
            PlanValidationError(
                step_id=step.step_id,
                kind=ValidationErrorKind.missing_dependency,
                message=(
                    f"'{step.tool}' returns a list of links, but no later '{consumer}' step "
                    f"reads them from {step.step_id}"
                ),
                suggestion=f"Add a step {consumer}(urls={ref}) after {step.step_id}",
                field="tool",
            )
        ]

    def _check_schema_available(self, step: PlanStep) -> List[PlanValidationWarning]:
        if self._tools is None or step.tool not in self._tools:
            return []
        if getattr(self._tools[step.tool], "output_schema", None):
            return []
        return [
            PlanValidationWarning(
                step_id=step.step_id,
                kind=ValidationWarningKind.unknown_tool,
                message=(
                    f"Tool '{step.tool}' does not publish an output schema; "
                    "references to its output are checked against the plan's declaration only"
                ),
            )
        ]
