from __future__ import annotations

from typing import Any, Dict, Optional

import pytest

from planrunner.planning.classifiers import (
    DEFAULT_URL_LIST_TOOLS,
    UrlListClassifier,
    schema_returns_urls,
)
from planrunner.schemas.records import ToolSource


@pytest.mark.parametrize(
    "schema, expected",
    [
        (None, False),
        ({"type": "object", "properties": {"results": {"type": "array"}}}, True),
        ({"type": "object", "properties": {"results": {"type": "string"}}}, False),
        ({"type": "array", "description": "Matching URLs"}, True),
        ({"type": "object", "description": "Returns a list of links", "properties": {"x": {}}}, True),
        ({"type": "array", "description": "Numbers"}, False),
        ({"type": "string", "description": "Plain text"}, False),
    ],
)
def test_schema_returns_urls(schema: Optional[Dict[str, Any]], expected: bool) -> None:
    assert schema_returns_urls(schema) is expected


def test_known_search_tools_are_producers() -> None:
    classifier = UrlListClassifier()

    assert all(classifier.is_producer(name) for name in DEFAULT_URL_LIST_TOOLS)


def test_deny_list_wins_over_name_heuristic() -> None:
    assert not UrlListClassifier().is_producer("tickertick_search_tickers")


def test_consumer_is_never_a_producer() -> None:
    classifier = UrlListClassifier(consumer="open_urls", allow=frozenset({"open_urls"}))

    assert not classifier.is_producer("open_urls")


def test_name_heuristic_applies_to_local_tools_only() -> None:
    classifier = UrlListClassifier()

    assert classifier.is_producer("company_search")
    assert not classifier.is_producer("company_search", source=ToolSource.external)
    assert not UrlListClassifier(name_heuristic=False).is_producer("company_search")


def test_extra_rules_are_consulted() -> None:
    classifier = UrlListClassifier()
    classifier.add_rule(lambda name, schema, source: name.endswith("_index"))

    assert classifier.is_producer("filings_index")
    assert not classifier.is_producer("filings_reader")
    assert classifier.describe()["extra_rules"] == 1


def test_describe_lists_rules() -> None:
    described = UrlListClassifier().describe()

    assert described["consumer"] == "fetch_web_content"
    assert "web_search" in described["allow"]
    assert described["deny"] == ["tickertick_search_tickers"]
