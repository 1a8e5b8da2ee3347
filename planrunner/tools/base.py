from __future__ import annotations

"""Tool descriptor protocol and execution data models.

A tool is the concrete execution unit for a plan step. The orchestrator
resolves ``ToolCall.tool`` through a ``ToolRegistry`` and awaits
``execute(params)``; the validator only reads the descriptor's schemas and
``source``.

Tools should:

- report failure either by raising or by returning ``success=False`` with an
  ``error`` message; both abort the orchestration session,
- describe their output with a JSON-Schema ``output_schema`` so later steps
  can be shape-checked before execution,
- leave cancellation and timeouts to themselves (the orchestrator imposes
  none).
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol

from ..schemas.records import ToolSource


@dataclass(frozen=True)
class ToolOutcome:
    """Structured tool execution result."""

    success: bool
    result: Any = None
    error: Optional[str] = None

    @classmethod
    def coerce(cls, raw: Any) -> "ToolOutcome":
        """Normalize whatever a tool returned into a ``ToolOutcome``.

        ``{success, result, error}`` mappings are unpacked; any other value is
        treated as a successful result.
        """
        if isinstance(raw, ToolOutcome):
            return raw
        if isinstance(raw, Mapping) and isinstance(raw.get("success"), bool):
            error = raw.get("error")
            return cls(
                success=raw["success"],
                result=raw.get("result"),
                error=str(error) if error is not None else None,
            )
        return cls(success=True, result=raw)


class ToolDescriptor(Protocol):
    """Protocol for tool implementations."""

    name: str
    input_schema: Optional[Dict[str, Any]]
    output_schema: Optional[Dict[str, Any]]
    source: ToolSource

    async def execute(self, params: Dict[str, Any]) -> ToolOutcome: ...


ToolFunction = Callable[[Dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class FunctionTool:
    """
    Adapt a plain async callable into a ``ToolDescriptor``.

    The callable receives the resolved parameters dict. Its return value goes
    through ``ToolOutcome.coerce``, so it may return a bare result, a
    ``ToolOutcome`` or a ``{success, result, error}`` mapping. Exceptions are
    not caught here; the orchestrator records them as failures.
    """

    name: str
    func: ToolFunction
    input_schema: Optional[Dict[str, Any]] = None
    output_schema: Optional[Dict[str, Any]] = None
    source: ToolSource = ToolSource.local
    description: str = ""
    tags: Dict[str, Any] = field(default_factory=dict)

    async def execute(self, params: Dict[str, Any]) -> ToolOutcome:
        return ToolOutcome.coerce(await self.func(params))
