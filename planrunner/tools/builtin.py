from __future__ import annotations

"""Built-in tool definitions.

Only one tool ships with the package: the virtual content generation tool. A
plan may always use it, whether or not the host registered it, because the
host routes it to its own LLM call. ``GenerateContentTool`` lets the host
register it with that call attached.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from ..schemas.records import ToolSource
from .base import ToolOutcome

GENERATE_CONTENT_TOOL_NAME = "generate_content"

GENERATE_CONTENT_INPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "prompt": {"type": "string", "description": "Instruction for the content to generate"},
        "context": {"type": "string", "description": "Material the content should be based on"},
        "task": {"type": "string", "description": "Short task label"},
    },
    "required": ["prompt"],
}

GENERATE_CONTENT_OUTPUT_SCHEMA: Dict[str, Any] = {
    "type": "string",
    "description": "Generated content from LLM as plain text",
}

# Alias -> canonical tool name. An alias only applies when its target is registered.
DEFAULT_TOOL_ALIASES: Dict[str, str] = {
    "create": "create_file",
}


@dataclass(frozen=True)
class GenerateContentTool:
    """
    Virtual tool that asks the host LLM to write text.

    Delegates generation to the ``generate`` callable supplied by the host. When
    no callable is configured the tool reports a failure instead of raising.
    """

    generate: Optional[Callable[[str], Awaitable[str]]] = None
    name: str = GENERATE_CONTENT_TOOL_NAME
    input_schema: Dict[str, Any] = field(default_factory=lambda: dict(GENERATE_CONTENT_INPUT_SCHEMA))
    output_schema: Dict[str, Any] = field(default_factory=lambda: dict(GENERATE_CONTENT_OUTPUT_SCHEMA))
    source: ToolSource = ToolSource.local

    async def execute(self, params: Dict[str, Any]) -> ToolOutcome:
        """
        Generate content.

        Args:
            params: Dictionary of arguments:
                - prompt (str): The instruction. Required.
                - context (str): Optional source material appended to the prompt.
                - task (str): Optional task label prepended to the prompt.

        Returns:
            ToolOutcome: The generated text, or an error when misconfigured.
        """
        prompt = str(params.get("prompt") or "").strip()
        if not prompt:
            return ToolOutcome(success=False, error="invalid parameter: missing prompt")
        if self.generate is None:
            return ToolOutcome(success=False, error="generate_content not configured")

        parts = []
        if params.get("task"):
            parts.append(f"Task: {params['task']}")
        parts.append(prompt)
        if params.get("context"):
            parts.append(f"Context:\n{params['context']}")
        text = await self.generate("\n\n".join(parts))
        return ToolOutcome(success=True, result=text)


GENERATE_CONTENT_TOOL = GenerateContentTool()
