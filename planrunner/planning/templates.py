from __future__ import annotations

"""Template placeholder grammar.

Plan step inputs may embed references to earlier steps' results::

    {{step1}}                    whole result of step1
    {{step1.results[0].url}}     a located sub-value
    {{step1.output.content}}     legacy ``.output`` infix, same as {{step1.content}}

This module only parses and rewrites placeholders. Checking references
against declared output schemas lives in ``planning.validator``; substituting
actual results at execution time lives in ``runtime.resolver``.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Tuple, Union

PathToken = Union[str, int]
Path = Tuple[PathToken, ...]

PLACEHOLDER_RE = re.compile(
    r"\{\{\s*(?P<step>step\w+)(?P<infix>\.output)?(?P<path>(?:\.\w+|\[\d+\])*)\s*\}\}"
)

_TOKEN_RE = re.compile(r"\.(\w+)|\[(\d+)\]")


def parse_path(text: str) -> Path:
    """Split ``.a[0].b`` into ``("a", 0, "b")``."""
    tokens: List[PathToken] = []
    for name, index in _TOKEN_RE.findall(text or ""):
        tokens.append(int(index) if index else name)
    return tuple(tokens)


def format_path(path: Path) -> str:
    return "".join(f"[{tok}]" if isinstance(tok, int) else f".{tok}" for tok in path)


@dataclass(frozen=True)
class TemplateReference:
    """One placeholder occurrence inside a step input."""

    raw: str
    step_id: str
    path: Path = ()
    has_output_infix: bool = False

    @property
    def first_segment(self) -> Optional[PathToken]:
        return first_segment(self.path)

    @property
    def redundant_infix(self) -> bool:
        """Whether dropping ``.output`` keeps the same meaning.

        ``{{step1.output.output}}`` needs its infix, otherwise the field named
        ``output`` would be read as the infix on the next parse.
        """
        return self.has_output_infix and first_segment(self.path) != "output"

    def render(self, *, path: Optional[Path] = None, keep_infix: Optional[bool] = None) -> str:
        use_path = self.path if path is None else path
        infix = self.has_output_infix if keep_infix is None else keep_infix
        if not infix and use_path and use_path[0] == "output":
            infix = True
        return "{{" + self.step_id + (".output" if infix else "") + format_path(use_path) + "}}"


def reference_from_match(match: "re.Match[str]") -> TemplateReference:
    return TemplateReference(
        raw=match.group(0),
        step_id=match.group("step"),
        path=parse_path(match.group("path")),
        has_output_infix=bool(match.group("infix")),
    )


def first_segment(path: Path) -> Optional[PathToken]:
    return path[0] if path else None


def references_in_string(text: str) -> List[TemplateReference]:
    return [reference_from_match(m) for m in PLACEHOLDER_RE.finditer(text)]


def whole_reference(text: str) -> Optional[TemplateReference]:
    """Return the reference if ``text`` is exactly one placeholder."""
    match = PLACEHOLDER_RE.fullmatch(text.strip())
    return reference_from_match(match) if match else None


def iter_strings(value: Any) -> Iterator[str]:
    """Yield every string nested in dicts, lists and tuples."""
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_strings(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_strings(item)


def find_references(value: Any) -> List[TemplateReference]:
    refs: List[TemplateReference] = []
    for text in iter_strings(value):
        refs.extend(references_in_string(text))
    return refs


def map_strings(value: Any, fn: Callable[[str], Any]) -> Any:
    """Return a copy of ``value`` with ``fn`` applied to every nested string."""
    if isinstance(value, str):
        return fn(value)
    if isinstance(value, dict):
        return {k: map_strings(v, fn) for k, v in value.items()}
    if isinstance(value, list):
        return [map_strings(v, fn) for v in value]
    if isinstance(value, tuple):
        return tuple(map_strings(v, fn) for v in value)
    return value


def rewrite_references(value: Any, fn: Callable[[TemplateReference], Optional[str]]) -> Any:
    """Replace placeholders in ``value``.

    ``fn`` receives each reference and returns the replacement text, or
    ``None`` to leave that placeholder untouched.
    """

    def _sub(match: "re.Match[str]") -> str:
        replacement = fn(reference_from_match(match))
        return match.group(0) if replacement is None else replacement

    return map_strings(value, lambda text: PLACEHOLDER_RE.sub(_sub, text))
