from __future__ import annotations

"""Helpers for reading JSON-Schema output declarations."""

from typing import Any, List, Mapping, Optional

from .templates import Path

VALID_OUTPUT_TYPES = ("object", "array", "string")
COMBINATORS = ("anyOf", "oneOf", "allOf")

# Preferred field to reference when a plan names one that does not exist.
STANDARD_FIELDS = ("results", "content", "data", "output", "path", "value")

# Field names that re-select a list which is already the whole output.
ARRAY_FIELD_NAMES = frozenset({"results", "urls", "links", "items"})


def is_combinator(schema: Optional[Mapping[str, Any]]) -> bool:
    return isinstance(schema, Mapping) and any(key in schema for key in COMBINATORS)


def schema_type(schema: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not isinstance(schema, Mapping) or is_combinator(schema):
        return None
    value = schema.get("type")
    return value if isinstance(value, str) else None


def properties_of(schema: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    if schema_type(schema) != "object":
        return {}
    props = schema.get("properties")  # type: ignore[union-attr]
    return props if isinstance(props, Mapping) else {}


def standard_field(schema: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Pick the field a reference to this output should normally use."""
    props = properties_of(schema)
    for name in STANDARD_FIELDS:
        if name in props:
            return name
    return next(iter(props), None)


def schema_at_path(schema: Optional[Mapping[str, Any]], path: Path) -> Optional[Mapping[str, Any]]:
    """Walk ``path`` through nested ``properties``/``items``.

    Returns ``None`` as soon as the schema stops describing the path.
    """
    current = schema
    for token in path:
        kind = schema_type(current)
        if isinstance(token, int):
            if kind != "array":
                return None
            items = current.get("items")  # type: ignore[union-attr]
            current = items if isinstance(items, Mapping) else None
        else:
            if kind != "object":
                return None
            current = properties_of(current).get(token)
        if current is None:
            return None
    return current


def produced_type(schema: Optional[Mapping[str, Any]], path: Path) -> Optional[str]:
    """Type a placeholder with ``path`` yields, or ``None`` when unknown."""
    return schema_type(schema_at_path(schema, path))


def field_names(schema: Optional[Mapping[str, Any]]) -> List[str]:
    return list(properties_of(schema))
