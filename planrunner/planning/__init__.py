"""Static planning checks.

A *plan* arrives from an upstream LLM as an ordered list of steps. Before it
runs, this package:

- parses template placeholders (``templates``),
- decides which tools produce URL lists (``classifiers``),
- validates the plan against a tool snapshot (``PlanValidator``),
- repairs common field-reference mistakes (``auto_fix_plan``),
- renders results for humans (``format_validation_result``).

Nothing here executes tools or raises for an invalid plan; problems are
returned as ``ValidationResult`` data.
"""

from .autofix import auto_fix_plan
from .classifiers import DEFAULT_NON_URL_TOOLS, DEFAULT_URL_LIST_TOOLS, UrlListClassifier, schema_returns_urls
from .formatting import format_validation_result
from .shapes import STANDARD_FIELDS, standard_field
from .steps import coerce_steps
from .templates import TemplateReference, find_references, first_segment, parse_path, whole_reference
from .validator import PlanValidator

__all__ = [
    "PlanValidator",
    "auto_fix_plan",
    "format_validation_result",
    "UrlListClassifier",
    "DEFAULT_URL_LIST_TOOLS",
    "DEFAULT_NON_URL_TOOLS",
    "schema_returns_urls",
    "STANDARD_FIELDS",
    "standard_field",
    "coerce_steps",
    "TemplateReference",
    "find_references",
    "first_segment",
    "parse_path",
    "whole_reference",
]
