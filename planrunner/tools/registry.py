from __future__ import annotations

"""Tool registry.

The registry maps a tool name to an executable ``ToolDescriptor``.

The orchestrator reads the live registry for every call, so tools registered
or removed between sessions take effect immediately. The validator works on
``snapshot()`` instead, which cannot change underneath a validation pass.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping

from .base import ToolDescriptor

ToolsMap = Mapping[str, ToolDescriptor]


class ToolRegistry:
    """
    In-memory mapping of tool names to implementations.

    Notes:
        - ``register`` overwrites any existing mapping for the tool name.
        - ``get`` will raise ``KeyError`` if the tool is missing.
    """

    def __init__(self, tools: Iterable[ToolDescriptor] = ()) -> None:
        self._tools: Dict[str, ToolDescriptor] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: ToolDescriptor) -> None:
        """
        Register a tool implementation.

        Args:
            tool: The tool instance to register. It must expose a ``name`` attribute.
        """
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> None:
        """Remove a tool if present."""
        self._tools.pop(name, None)

    def get(self, name: str) -> ToolDescriptor:
        """
        Retrieve a registered tool by name.

        Raises:
            KeyError: If no tool is registered with the given name.
        """
        return self._tools[name]

    def has(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> List[str]:
        return sorted(self._tools)

    def snapshot(self) -> ToolsMap:
        """Return a read-only copy of the current name → tool mapping."""
        return MappingProxyType(dict(self._tools))

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
