from __future__ import annotations

"""LangGraph tool execution orchestrator.

``ToolExecutionOrchestrator`` runs an already validated plan, expressed as an
ordered list of ``ToolCall`` items, against the live ``ToolRegistry``.

Execution model
---------------

- Sessions are submitted to an ``ExecutionQueue``; one session runs at a time.
- Inside a session a LangGraph state machine (``start`` → ``execute``* →
  ``finish``) runs exactly one tool call per visit of ``execute``.

For each call the orchestrator:

1. records the request (status ``pending``);
2. looks the tool up in the live registry; a missing tool aborts the session;
3. marks the record ``running`` with progress ``index / total``;
4. substitutes template placeholders from earlier results; failure aborts
   before the tool is invoked;
5. invokes the tool;
6. on success, records the result with status code 200;
7. on failure (exception or ``success=False``), records the error and aborts
   every remaining call.

Failures are raised to the caller as ``OrchestrationError`` subclasses after a
``FailedEvent`` has been emitted. There is no retry and no per-call timeout.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Mapping, NoReturn, Optional, Sequence, Union
from uuid import uuid4

from langgraph.graph import END, StateGraph

from ..schemas.events import CompletedEvent, DetectionEvent, ExecutingEvent, FailedEvent, RecordUpdatedEvent
from ..schemas.plan import OrchestrationResult, ToolCall, ToolCallResult
from ..schemas.records import RequestSource, ToolCallRecord, ToolSource
from ..tools.base import ToolDescriptor, ToolOutcome
from ..tools.registry import ToolRegistry
from .errors import (
    OrchestrationError,
    TemplateResolutionError,
    ToolExecutionError,
    ToolNotFoundError,
    classify_error,
)
from .models import OrchestratorDeps, _GraphState
from .observer import LoggingObserver, StatusObserver
from .queue import ExecutionQueue, QueueStatus
from .resolver import resolve_placeholders
from .store import ToolCallRecordStore

logger = logging.getLogger(__name__)

ToolCallInput = Union[ToolCall, Mapping[str, Any]]


def _result_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 3)


class ToolExecutionOrchestrator:
    """Execute tool call plans strictly in order with fail-fast semantics."""

    def __init__(
        self,
        *,
        registry: ToolRegistry,
        store: Optional[ToolCallRecordStore] = None,
        observer: Optional[StatusObserver] = None,
        queue: Optional[ExecutionQueue] = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            registry: Live tool registry, read on every call.
            store: Record store for request/response telemetry.
            observer: Default observer for sessions that do not pass their own.
            queue: Queue serializing sessions. Share one queue between
                orchestrators that touch the same session state.
        """
        self._deps = OrchestratorDeps(
            registry=registry,
            store=store if store is not None else ToolCallRecordStore(),
            observer=observer if observer is not None else LoggingObserver(),
        )
        self._queue = queue if queue is not None else ExecutionQueue()
        self._graph = self._build_graph()

    @property
    def store(self) -> ToolCallRecordStore:
        return self._deps.store

    @property
    def queue(self) -> ExecutionQueue:
        return self._queue

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_GraphState)
        g.add_node("start", self._node_start)
        g.add_node("execute", self._node_execute_next)
        g.add_node("finish", self._node_finish)

        g.set_entry_point("start")
        g.add_edge("start", "execute")
        g.add_conditional_edges(
            "execute",
            self._route_after_execute,
            {
                "finish": "finish",
                "continue": "execute",
            },
        )
        g.add_edge("finish", END)
        return g.compile()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute_tool_calls_orchestration(
        self,
        tool_calls: Sequence[ToolCallInput],
        *,
        message_id: Optional[str] = None,
        request_source: RequestSource = RequestSource.auto,
        observer: Optional[StatusObserver] = None,
    ) -> OrchestrationResult:
        """Queue a session for ``tool_calls`` and wait for it to finish.

        Raises:
            ToolNotFoundError: A call names a tool missing from the registry.
            TemplateResolutionError: A placeholder could not be resolved.
            ToolExecutionError: A tool raised or reported failure; ``str()`` is
                the tool's message.
            QueueClearedError: The session was cleared before it started.
        """
        calls = [
            c if isinstance(c, ToolCall) else ToolCall.model_validate(c)
            for c in tool_calls
        ]
        calls = [
            c if c.step_id else c.model_copy(update={"step_id": f"step{i + 1}"})
            for i, c in enumerate(calls)
        ]
        session_observer = observer if observer is not None else self._deps.observer

        async def _session() -> OrchestrationResult:
            return await self.run_session(
                calls,
                message_id=message_id,
                request_source=request_source,
                observer=session_observer,
            )

        return await self._queue.run(_session, label=f"message:{message_id}" if message_id else None)

    async def run_session(
        self,
        calls: Sequence[ToolCall],
        *,
        message_id: Optional[str] = None,
        request_source: RequestSource = RequestSource.auto,
        observer: Optional[StatusObserver] = None,
    ) -> OrchestrationResult:
        """Run one session immediately, bypassing the queue.

        Only call this from inside a queued session or when nothing else can
        touch the record store concurrently.
        """
        session_id = str(uuid4())
        session_observer = observer if observer is not None else self._deps.observer
        state: _GraphState = {
            "session_id": session_id,
            "message_id": message_id,
            "request_source": request_source,
            "calls": list(calls),
            "idx": 0,
            "results": [],
            "results_by_step": {},
            "record_ids": [],
            "observer": session_observer,
        }
        try:
            final = await self._graph.ainvoke(state, config={"recursion_limit": len(calls) + 10})
        except OrchestrationError as exc:
            hint = classify_error(str(exc)).hint
            logger.error(f"Orchestration session {session_id} aborted at {exc.tool_name}: {exc}")
            await session_observer.notify(
                FailedEvent(
                    session_id=session_id,
                    message_id=message_id,
                    error=str(exc),
                    tool=exc.tool_name,
                    step_id=exc.step_id,
                    hint=hint,
                )
            )
            raise

        return OrchestrationResult(
            session_id=session_id,
            results=list(final["results"]),
            record_ids=list(final["record_ids"]),
        )

    def clear_queue(self) -> int:
        return self._queue.clear()

    def queue_status(self) -> QueueStatus:
        return self._queue.status()

    # ------------------------------------------------------------------
    # Graph nodes
    # ------------------------------------------------------------------

    async def _node_start(self, state: _GraphState) -> _GraphState:
        """Graph entry node. Announces the detected tool calls."""
        calls = state["calls"]
        await state["observer"].notify(
            DetectionEvent(
                session_id=state["session_id"],
                message_id=state["message_id"],
                total=len(calls),
                tools=[c.tool for c in calls],
            )
        )
        return state

    async def _node_execute_next(self, state: _GraphState) -> _GraphState:
        """Execute the next tool call, or mark the session finished."""
        calls = state["calls"]
        idx = int(state.get("idx") or 0)
        if idx >= len(calls):
            state["_finished"] = True
            return state

        result = await self._execute_call(state, calls[idx], idx, len(calls))
        state["results"].append(result)
        state["results_by_step"][result.step_id] = result.result
        state["record_ids"].append(result.record_id)
        state["idx"] = idx + 1
        return state

    async def _node_finish(self, state: _GraphState) -> _GraphState:
        """Finish node. Emits the completion event."""
        await state["observer"].notify(
            CompletedEvent(
                session_id=state["session_id"],
                message_id=state["message_id"],
                count=len(state["results"]),
                record_ids=list(state["record_ids"]),
            )
        )
        return state

    def _route_after_execute(self, state: _GraphState) -> str:
        if state.get("_finished"):
            return "finish"
        return "continue"

    # ------------------------------------------------------------------
    # Per-call execution
    # ------------------------------------------------------------------

    async def _publish(self, state: _GraphState, record: Optional[ToolCallRecord]) -> None:
        if record is None:
            return
        await state["observer"].notify(
            RecordUpdatedEvent(session_id=state["session_id"], message_id=state["message_id"], record=record)
        )

    def _lookup(self, name: str) -> Optional[ToolDescriptor]:
        registry = self._deps.registry
        return registry.get(name) if registry.has(name) else None

    async def _execute_call(self, state: _GraphState, call: ToolCall, idx: int, total: int) -> ToolCallResult:
        store = self._deps.store
        step_id = call.step_id or f"step{idx + 1}"
        descriptor = self._lookup(call.tool)
        source = getattr(descriptor, "source", ToolSource.local) if descriptor is not None else ToolSource.local

        record = store.record_request(
            call.tool,
            call.parameters,
            message_id=state["message_id"],
            source=source,
            request_source=state["request_source"],
        )
        await self._publish(state, record)
        metadata: Dict[str, Any] = {
            "source": ToolSource(source).value,
            "orchestrationIndex": idx,
            "orchestrationTotal": total,
        }
        started = time.perf_counter()

        if descriptor is None:
            await self._fail(
                state,
                record.id,
                ToolNotFoundError(call.tool, step_id=step_id, record_id=record.id),
                started,
                metadata,
            )

        progress = int(idx * 100 / total) if total else 0
        running = store.mark_running(
            record.id,
            progress=progress,
            message=f"Executing {call.tool} ({idx + 1}/{total})",
        )
        await self._publish(state, running)
        await state["observer"].notify(
            ExecutingEvent(
                session_id=state["session_id"],
                message_id=state["message_id"],
                tool=call.tool,
                step_id=step_id,
                index=idx,
                total=total,
                progress=progress,
            )
        )

        try:
            params = resolve_placeholders(call.parameters, state["results_by_step"])
        except TemplateResolutionError as exc:
            exc.tool_name, exc.step_id, exc.record_id = call.tool, step_id, record.id
            await self._fail(state, record.id, exc, started, metadata)

        logger.debug(f"Invoking {call.tool} for {step_id}")
        try:
            outcome = ToolOutcome.coerce(await descriptor.execute(params))  # type: ignore[union-attr]
        except asyncio.CancelledError:
            store.record_response(
                record.id,
                error=f"Tool '{call.tool}' was cancelled",
                execution_time=_elapsed_ms(started),
                metadata=dict(metadata, errorType="cancelled"),
            )
            raise
        except Exception as exc:
            error = ToolExecutionError(str(exc), tool_name=call.tool, step_id=step_id, record_id=record.id)
            await self._fail(state, record.id, error, started, metadata, error_type=type(exc).__name__, cause=exc)

        if not outcome.success:
            message = outcome.error or f"Tool '{call.tool}' reported failure without an error message"
            error = ToolExecutionError(message, tool_name=call.tool, step_id=step_id, record_id=record.id)
            await self._fail(state, record.id, error, started, metadata)

        elapsed = _elapsed_ms(started)
        done = store.record_response(
            record.id,
            result=outcome.result,
            execution_time=elapsed,
            status_code=200,
            metadata=dict(metadata, executionTime=elapsed, resultType=_result_type(outcome.result)),
        )
        await self._publish(state, done)
        logger.debug(f"{call.tool} finished in {elapsed:.0f}ms")
        return ToolCallResult(step_id=step_id, tool=call.tool, record_id=record.id, result=outcome.result)

    async def _fail(
        self,
        state: _GraphState,
        record_id: str,
        error: OrchestrationError,
        started: float,
        metadata: Dict[str, Any],
        *,
        error_type: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> NoReturn:
        """Record ``error`` on the record, publish it, then raise it."""
        elapsed = _elapsed_ms(started)
        classification = classify_error(str(error))
        failed = self._deps.store.record_response(
            record_id,
            error=str(error),
            execution_time=elapsed,
            status_code=error.status_code,
            metadata=dict(
                metadata,
                executionTime=elapsed,
                errorType=error_type or error.error_type,
                category=classification.category.value,
            ),
        )
        logger.error(
            f"Tool {error.tool_name} failed ({classification.category.value}): {error}. {classification.hint}"
        )
        await self._publish(state, failed)
        if cause is not None:
            raise error from cause
        raise error
