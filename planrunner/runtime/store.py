from __future__ import annotations

"""In-memory tool call record store.

Records are inserted when a request is issued, mutated in place as the call
progresses and finalized with a response. Status changes follow
``ALLOWED_TRANSITIONS`` (``pending → running → completed|failed``); anything
else raises ``InvalidTransitionError``.

Growth is bounded two ways:

- ``sweep`` removes records older than a cutoff (24 hours by default);
- when ``capacity`` is exceeded on insert, the oldest finished record is
  evicted. Pending and running records are never evicted; the store logs a
  warning and stays over capacity until they finish.

Reads never evict. All writers are expected to run inside the execution
queue's single worker, so the store does no locking of its own.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from ..core.config import TelemetryConfig
from ..schemas.records import (
    DisplayData,
    DisplayPhase,
    ExecutionStatistics,
    Progress,
    RecordExport,
    RequestSource,
    ToolCallRecord,
    ToolCallRequest,
    ToolCallResponse,
    ToolCallStatus,
    ToolSource,
    can_transition,
)
from .errors import InvalidTransitionError

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


_FINISHED = (ToolCallStatus.completed, ToolCallStatus.failed)


class ToolCallRecordStore:
    """Keyed store of ``ToolCallRecord`` telemetry.

    Accessors return copies; only the store's own methods change a record.
    """

    def __init__(
        self,
        config: Optional[TelemetryConfig] = None,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._config = config if config is not None else TelemetryConfig()
        self._clock = clock
        self._records: "OrderedDict[str, ToolCallRecord]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_request(
        self,
        tool_name: str,
        parameters: Optional[Dict[str, Any]] = None,
        *,
        message_id: Optional[str] = None,
        source: ToolSource = ToolSource.local,
        request_source: RequestSource = RequestSource.auto,
    ) -> ToolCallRecord:
        """Create a pending record for a new tool call."""
        record = ToolCallRecord(
            tool_name=tool_name,
            source=source,
            request=ToolCallRequest(
                method=tool_name,
                parameters=dict(parameters or {}),
                timestamp=self._clock(),
                message_id=message_id,
                source=request_source,
            ),
            status=ToolCallStatus.pending,
            display_data=DisplayData(phase=DisplayPhase.detection, message=f"Detected tool call: {tool_name}"),
        )
        self._records[record.id] = record
        logger.debug(f"Recorded tool call request {record.id} ({tool_name})")
        self._enforce_capacity()
        return record.model_copy(deep=True)

    def mark_running(self, record_id: str, *, progress: int = 0, message: Optional[str] = None) -> ToolCallRecord:
        """Move a pending record to running.

        Raises:
            KeyError: If the record does not exist.
            InvalidTransitionError: If the record is not pending.
        """
        record = self._records[record_id]
        self._transition(record, ToolCallStatus.running)
        record.display_data = DisplayData(
            phase=DisplayPhase.executing,
            message=message or f"Executing {record.tool_name}",
            icon="⚙️",
            progress=Progress(current=max(0, min(progress, 100)), total=100),
        )
        return record.model_copy(deep=True)

    def record_response(
        self,
        record_id: str,
        *,
        result: Any = None,
        error: Optional[str] = None,
        execution_time: float = 0.0,
        status_code: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[ToolCallRecord]:
        """Finalize a record as completed, or failed when ``error`` is given.

        A pending record that fails is moved through running first. An unknown
        id is logged and ignored (it may have been swept or evicted).
        """
        record = self._records.get(record_id)
        if record is None:
            logger.warning(f"Tool call record not found: {record_id}")
            return None

        failed = error is not None
        target = ToolCallStatus.failed if failed else ToolCallStatus.completed
        if failed and record.status == ToolCallStatus.pending:
            self._transition(record, ToolCallStatus.running)
        self._transition(record, target)

        record.response = ToolCallResponse(
            result=None if failed else result,
            error=error,
            timestamp=self._clock(),
            execution_time=execution_time,
            status_code=status_code if status_code is not None else (500 if failed else 200),
            metadata=dict(metadata or {}),
        )
        if failed:
            record.display_data = DisplayData(
                phase=DisplayPhase.failed,
                message=f"{record.tool_name} failed: {error}",
                icon="❌",
            )
        else:
            record.display_data = DisplayData(
                phase=DisplayPhase.completed,
                message=f"{record.tool_name} completed in {execution_time:.0f}ms",
                icon="✅",
                progress=Progress(current=100, total=100),
            )
        return record.model_copy(deep=True)

    def sweep(self, older_than: Optional[timedelta] = None) -> int:
        """Remove records whose request is older than ``older_than``.

        Returns:
            The number of records removed.
        """
        age = older_than if older_than is not None else timedelta(hours=self._config.retention_hours)
        cutoff = self._clock() - age
        stale = [rid for rid, rec in self._records.items() if rec.request.timestamp < cutoff]
        for rid in stale:
            del self._records[rid]
        logger.debug(f"Swept {len(stale)} tool call record(s) older than {cutoff.isoformat()}")
        return len(stale)

    def clear(self) -> None:
        self._records.clear()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> Optional[ToolCallRecord]:
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record is not None else None

    def records(self) -> List[ToolCallRecord]:
        return [r.model_copy(deep=True) for r in self._records.values()]

    def records_for_message(self, message_id: str) -> List[ToolCallRecord]:
        return [r.model_copy(deep=True) for r in self._records.values() if r.request.message_id == message_id]

    def statistics(self) -> ExecutionStatistics:
        records = list(self._records.values())
        by_status = {status: 0 for status in ToolCallStatus}
        for record in records:
            by_status[record.status] += 1

        durations = [
            r.response.execution_time
            for r in records
            if r.status == ToolCallStatus.completed and r.response is not None
        ]
        average = round(sum(durations) / len(durations)) if durations else 0

        recent = sorted(records, key=lambda r: r.request.timestamp, reverse=True)
        recent = recent[: self._config.recent_activity_limit]
        return ExecutionStatistics(
            total_calls=len(records),
            completed_calls=by_status[ToolCallStatus.completed],
            failed_calls=by_status[ToolCallStatus.failed],
            running_calls=by_status[ToolCallStatus.running],
            pending_calls=by_status[ToolCallStatus.pending],
            average_execution_time=average,
            recent_activity=[r.model_copy(deep=True) for r in recent],
        )

    def export(self) -> RecordExport:
        return RecordExport(
            export_time=self._clock(),
            total_records=len(self._records),
            statistics=self.statistics(),
            records=self.records(),
        )

    def export_json(self, *, indent: Optional[int] = 2) -> str:
        """Serialize every record with camelCase keys and ISO-8601 timestamps."""
        return self.export().model_dump_json(by_alias=True, indent=indent)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(self, record: ToolCallRecord, target: ToolCallStatus) -> None:
        if not can_transition(record.status, target):
            raise InvalidTransitionError(record.id, record.status, target)
        logger.debug(f"Record {record.id}: {record.status.value} -> {target.value}")
        record.status = target

    def _enforce_capacity(self) -> None:
        capacity = self._config.capacity
        if capacity <= 0:
            return
        while len(self._records) > capacity:
            victim = next((rid for rid, rec in self._records.items() if rec.status in _FINISHED), None)
            if victim is None:
                # In-flight records are still referenced by their callers.
                logger.warning(
                    f"Tool call record store over capacity ({len(self._records)}/{capacity}); "
                    "no finished record to evict"
                )
                return
            del self._records[victim]
            logger.warning(f"Tool call record store over capacity ({capacity}); evicted {victim}")
