from __future__ import annotations

"""Runtime substitution of template placeholders.

Before a step runs, every ``{{stepK...}}`` placeholder in its parameters is
replaced with data from step K's *actual* result:

- a string that is exactly one placeholder becomes the located value itself,
  with its type preserved;
- placeholders embedded in longer text are replaced by the value's text form
  (strings as-is, everything else as JSON);
- a result wrapped in an MCP text envelope
  (``{"content": [{"type": "text", "text": "<json>"}]}``) is unwrapped before
  a path is looked up;
- the last path segment falls back to common synonyms (``url``/``link``/
  ``href`` and so on).

A placeholder that cannot be located raises ``TemplateResolutionError``. It is
never replaced with an empty value.
"""

import json
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from ..planning.templates import (
    PLACEHOLDER_RE,
    PathToken,
    TemplateReference,
    map_strings,
    reference_from_match,
    references_in_string,
    whole_reference,
)
from .errors import TemplateResolutionError

FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "link": ("href", "url"),
    "href": ("link", "url"),
    "url": ("link", "href"),
    "content": ("text", "body", "raw_content"),
    "text": ("content", "body"),
    "title": ("name", "heading"),
    "name": ("title",),
}

MAX_FIELD_DEPTH = 3
MAX_LISTED_FIELDS = 5


def unwrap_envelope(value: Any) -> Any:
    """Return the parsed JSON inside an MCP text envelope, or ``value`` unchanged."""
    if not isinstance(value, Mapping):
        return value
    content = value.get("content")
    if not isinstance(content, list) or not content:
        return value
    first = content[0]
    if not isinstance(first, Mapping) or first.get("type") != "text" or not isinstance(first.get("text"), str):
        return value
    try:
        return json.loads(first["text"])
    except json.JSONDecodeError:
        return value


def serialize(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, default=str)


def available_field_paths(value: Any, prefix: str = "", depth: int = 0) -> List[str]:
    """List field paths present in ``value`` down to ``MAX_FIELD_DEPTH`` levels."""
    if depth >= MAX_FIELD_DEPTH:
        return []
    paths: List[str] = []
    if isinstance(value, Mapping):
        for key, item in value.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            paths.append(path)
            paths.extend(available_field_paths(item, path, depth + 1))
    elif isinstance(value, list) and value:
        path = f"{prefix}[0]"
        paths.extend(available_field_paths(value[0], path, depth + 1))
    return paths


def locate(value: Any, path: Sequence[PathToken]) -> Tuple[bool, Any]:
    """Follow ``path`` through ``value``. Returns ``(found, located_value)``."""
    current = unwrap_envelope(value)
    last = len(path) - 1
    for position, token in enumerate(path):
        if isinstance(token, int):
            if not isinstance(current, (list, tuple)) or token >= len(current):
                return False, None
            current = current[token]
            continue
        if not isinstance(current, Mapping):
            return False, None
        if token in current:
            current = current[token]
            continue
        if position != last:
            return False, None
        for alias in FIELD_ALIASES.get(token, ()):
            if alias in current:
                current = current[alias]
                break
        else:
            return False, None
    return True, current


def resolve_reference(ref: TemplateReference, results_by_step: Mapping[str, Any]) -> Any:
    if ref.step_id not in results_by_step:
        known = ", ".join(results_by_step) or "none"
        raise TemplateResolutionError(
            ref.raw,
            ref.step_id,
            f"step '{ref.step_id}' has no recorded result (completed steps: {known})",
        )
    result = results_by_step[ref.step_id]
    if not ref.path:
        return result
    found, located = locate(result, ref.path)
    if not found:
        raise TemplateResolutionError(
            ref.raw,
            ref.step_id,
            "field path not found in the step result",
            available_fields=available_field_paths(unwrap_envelope(result))[:MAX_LISTED_FIELDS],
        )
    return located


def resolve_placeholders(value: Any, results_by_step: Mapping[str, Any]) -> Any:
    """Return a copy of ``value`` with every placeholder substituted."""

    def _resolve_text(text: str) -> Any:
        if not references_in_string(text):
            return text
        whole = whole_reference(text)
        if whole is not None:
            return resolve_reference(whole, results_by_step)
        return PLACEHOLDER_RE.sub(
            lambda m: serialize(resolve_reference(reference_from_match(m), results_by_step)),
            text,
        )

    return map_strings(value, _resolve_text)
