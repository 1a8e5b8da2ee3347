"""Tool descriptors and the tool registry.

A *tool* is the execution unit for a plan step.

- The plan generator emits steps naming a tool and its input.
- The validator checks those steps against a registry ``snapshot()``.
- The orchestrator resolves each tool through the live ``ToolRegistry`` and
  awaits ``execute(params)``.

This package exports:

- ``ToolDescriptor``: protocol for async tool execution.
- ``ToolOutcome``: normalized execution result.
- ``FunctionTool``: adapter for plain async callables.
- ``ToolRegistry``: name → tool mapping.
- ``GENERATE_CONTENT_TOOL`` and ``DEFAULT_TOOL_ALIASES``: built-ins.
"""

from .base import FunctionTool, ToolDescriptor, ToolFunction, ToolOutcome
from .builtin import (
    DEFAULT_TOOL_ALIASES,
    GENERATE_CONTENT_TOOL,
    GENERATE_CONTENT_TOOL_NAME,
    GenerateContentTool,
)
from .registry import ToolRegistry, ToolsMap

__all__ = [
    "FunctionTool",
    "ToolDescriptor",
    "ToolFunction",
    "ToolOutcome",
    "ToolRegistry",
    "ToolsMap",
    "DEFAULT_TOOL_ALIASES",
    "GENERATE_CONTENT_TOOL",
    "GENERATE_CONTENT_TOOL_NAME",
    "GenerateContentTool",
]
