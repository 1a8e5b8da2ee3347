from __future__ import annotations

"""URL-list producer classification.

Search-style tools return lists of links rather than content. A plan that
calls one must hand those links to the URL consumer tool (by default
``fetch_web_content``) in a later step, otherwise the plan answers from
titles and snippets only.

Whether a tool is such a producer is a fuzzy judgement, so the rules are
kept here as data instead of inside the validator:

1. the consumer tool itself is never a producer;
2. ``deny`` wins over everything else;
3. ``allow`` lists known search tools;
4. ``extra_rules`` let callers register their own producer contracts;
5. a local tool whose name contains ``search`` is assumed to be one;
6. finally, the declared output schema is inspected.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional

from ..schemas.records import ToolSource

DEFAULT_URL_LIST_TOOLS: FrozenSet[str] = frozenset(
    {
        "web_search",
        "enhanced_search",
        "baidu_search",
        "bing_search",
        "duckduckgo_text_search",
        "duckduckgo_news_search",
        "duckduckgo_image_search",
        "duckduckgo_video_search",
        "wikipedia_search",
        "tavily_search",
        "get_yahoo_finance_news_search",
    }
)

DEFAULT_NON_URL_TOOLS: FrozenSet[str] = frozenset({"tickertick_search_tickers"})

ProducerRule = Callable[[str, Optional[Mapping[str, Any]], ToolSource], bool]


def _mentions_links(text: str) -> bool:
    lowered = text.lower()
    return "url" in lowered or "link" in lowered


def _mentions_list(text: str) -> bool:
    lowered = text.lower()
    return "list" in lowered or "array" in lowered


def schema_returns_urls(schema: Optional[Mapping[str, Any]]) -> bool:
    """Inspect an output schema for a list of links."""
    if not isinstance(schema, Mapping):
        return False
    schema_type = schema.get("type")
    description = str(schema.get("description") or "")

    if schema_type == "object":
        props = schema.get("properties")
        if isinstance(props, Mapping):
            results = props.get("results")
            if isinstance(results, Mapping) and results.get("type") == "array":
                return True
    if schema_type == "array" and _mentions_links(description):
        return True
    return bool(description) and _mentions_links(description) and _mentions_list(description)


@dataclass
class UrlListClassifier:
    """
    Decide whether a tool produces a list of URLs that must be fetched later.

    Attributes:
        consumer: Name of the tool that consumes URL lists.
        allow: Tool names always treated as producers.
        deny: Tool names never treated as producers.
        name_heuristic: Treat local tools with ``search`` in the name as producers.
        extra_rules: Additional predicates ``(name, output_schema, source) -> bool``.
    """

    consumer: str = "fetch_web_content"
    allow: FrozenSet[str] = DEFAULT_URL_LIST_TOOLS
    deny: FrozenSet[str] = DEFAULT_NON_URL_TOOLS
    name_heuristic: bool = True
    extra_rules: List[ProducerRule] = field(default_factory=list)

    def add_rule(self, rule: ProducerRule) -> None:
        self.extra_rules.append(rule)

    def is_producer(
        self,
        tool_name: str,
        output_schema: Optional[Mapping[str, Any]] = None,
        source: ToolSource = ToolSource.local,
    ) -> bool:
        if tool_name == self.consumer or tool_name in self.deny:
            return False
        if tool_name in self.allow:
            return True
        if any(rule(tool_name, output_schema, source) for rule in self.extra_rules):
            return True
        if self.name_heuristic and source != ToolSource.external and "search" in tool_name.lower():
            return True
        return schema_returns_urls(output_schema)

    def describe(self) -> Dict[str, Any]:
        return {
            "consumer": self.consumer,
            "allow": sorted(self.allow),
            "deny": sorted(self.deny),
            "name_heuristic": self.name_heuristic,
            "extra_rules": len(self.extra_rules),
        }
