from __future__ import annotations

"""Runtime dependency bundle and LangGraph state types.

- ``OrchestratorDeps`` collects the registry, record store and default
  observer the orchestrator needs.
- ``_GraphState`` is the mutable state passed between LangGraph nodes for one
  orchestration session.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, NotRequired, Optional, Required, TypedDict

from ..schemas.plan import ToolCall, ToolCallResult
from ..schemas.records import RequestSource
from ..tools.registry import ToolRegistry
from .observer import StatusObserver
from .store import ToolCallRecordStore


@dataclass(frozen=True)
class OrchestratorDeps:
    """Dependency bundle for ``ToolExecutionOrchestrator``.

    The registry is read live on every call, so tools registered after the
    orchestrator was built are visible to later sessions.
    """

    registry: ToolRegistry
    store: ToolCallRecordStore
    observer: StatusObserver


class _GraphState(TypedDict):
    """Mutable LangGraph state for a single orchestration session.

    Required keys:

    - ``session_id`` / ``message_id``: identifiers stamped on events and records.
    - ``calls``: the ordered tool calls.
    - ``idx``: index of the next call to execute.
    - ``results`` / ``results_by_step``: outputs of completed calls, in order
      and keyed by step id for placeholder resolution.
    - ``record_ids``: record ids of completed calls.
    - ``observer``: observer for this session.

    Optional keys:

    - ``_finished``: set once every call has run.
    """

    session_id: Required[str]
    message_id: Required[Optional[str]]
    request_source: Required[RequestSource]
    calls: Required[List[ToolCall]]
    idx: Required[int]
    results: Required[List[ToolCallResult]]
    results_by_step: Required[Dict[str, Any]]
    record_ids: Required[List[str]]
    observer: Required[StatusObserver]
    _finished: NotRequired[bool]
