from __future__ import annotations

"""Human-readable rendering of a ``ValidationResult``.

The output depends only on the result passed in, so the same result always
renders to the same text. It is meant for logs and for feeding back to the
plan generator when a plan has to be regenerated.
"""

from typing import List

from ..schemas.validation import ValidationResult

HEADER = "=== Plan Validation Result ==="


def format_validation_result(result: ValidationResult) -> str:
    lines: List[str] = [HEADER, ""]
    lines.append("✅ Plan is valid" if result.valid else "❌ Plan is invalid")

    if result.errors:
        lines.append("")
        lines.append(f"Errors ({len(result.errors)}):")
        for error in result.errors:
            lines.append(f"  [{error.step_id}] {error.message}")
            if error.suggestion:
                lines.append(f"    Suggestion: {error.suggestion}")

    if result.warnings:
        lines.append("")
        lines.append(f"Warnings ({len(result.warnings)}):")
        for warning in result.warnings:
            lines.append(f"  [{warning.step_id}] {warning.message}")

    if result.suggestions:
        lines.append("")
        lines.append("Suggestions:")
        for suggestion in result.suggestions:
            lines.append(f"  • {suggestion}")

    return "\n".join(lines)
