from __future__ import annotations

from typing import Any, Dict, List

import pytest

from planrunner.schemas.records import ToolSource
from planrunner.tools import FunctionTool, ToolRegistry

WEB_SEARCH_OUTPUT: Dict[str, Any] = {
    "type": "array",
    "description": "List of search results with title, url and snippet",
    "items": {
        "type": "object",
        "properties": {
            "title": {"type": "string"},
            "url": {"type": "string"},
            "snippet": {"type": "string"},
        },
    },
}

FETCH_INPUT: Dict[str, Any] = {
    "type": "object",
    "properties": {"urls": {"type": "array", "items": {"type": "string"}}},
}

FETCH_OUTPUT: Dict[str, Any] = {
    "type": "object",
    "properties": {"content": {"type": "string"}, "pages": {"type": "array"}},
}

CREATE_FILE_INPUT: Dict[str, Any] = {
    "type": "object",
    "properties": {"path": {"type": "string"}, "content": {"type": "string"}},
}

CREATE_FILE_OUTPUT: Dict[str, Any] = {
    "type": "object",
    "properties": {"path": {"type": "string"}, "bytes": {"type": "integer"}},
}

NEWS_OUTPUT: Dict[str, Any] = {
    "type": "object",
    "properties": {"articles": {"type": "array"}},
}


class _Recorder:
    """Async tool body that remembers every parameter set it received."""

    def __init__(self, result: Any = None) -> None:
        self.result = result
        self.calls: List[Dict[str, Any]] = []

    async def __call__(self, params: Dict[str, Any]) -> Any:
        self.calls.append(dict(params))
        return self.result


@pytest.fixture
def recorders() -> Dict[str, _Recorder]:
    return {
        "web_search": _Recorder([{"title": "A", "url": "https://a.example"}]),
        "fetch_web_content": _Recorder({"content": "page text", "pages": []}),
        "create_file": _Recorder({"path": "out.md", "bytes": 9}),
        "get_financial_news": _Recorder({"articles": [{"headline": "Up"}]}),
        "mcp_lookup": _Recorder({"anything": 1}),
    }


@pytest.fixture
def registry(recorders: Dict[str, _Recorder]) -> ToolRegistry:
    """Registry with a search tool, its URL consumer, a file writer, a data source and an external tool."""
    return ToolRegistry(
        [
            FunctionTool(name="web_search", func=recorders["web_search"], output_schema=WEB_SEARCH_OUTPUT),
            FunctionTool(
                name="fetch_web_content",
                func=recorders["fetch_web_content"],
                input_schema=FETCH_INPUT,
                output_schema=FETCH_OUTPUT,
            ),
            FunctionTool(
                name="create_file",
                func=recorders["create_file"],
                input_schema=CREATE_FILE_INPUT,
                output_schema=CREATE_FILE_OUTPUT,
            ),
            FunctionTool(name="get_financial_news", func=recorders["get_financial_news"], output_schema=NEWS_OUTPUT),
            FunctionTool(name="mcp_lookup", func=recorders["mcp_lookup"], source=ToolSource.external),
        ]
    )
