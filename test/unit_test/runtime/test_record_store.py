from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone

import pytest

from planrunner.core.config import TelemetryConfig
from planrunner.runtime.errors import InvalidTransitionError
from planrunner.runtime.store import ToolCallRecordStore
from planrunner.schemas.records import DisplayPhase, RequestSource, ToolCallStatus, ToolSource


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def store(clock: _Clock) -> ToolCallRecordStore:
    return ToolCallRecordStore(clock=clock)


def _completed(store: ToolCallRecordStore, tool: str, ms: float, **kwargs) -> str:
    rec = store.record_request(tool, {"q": tool}, **kwargs)
    store.mark_running(rec.id)
    store.record_response(rec.id, result={"ok": True}, execution_time=ms)
    return rec.id


def test_record_request_creates_pending_record(store: ToolCallRecordStore, clock: _Clock) -> None:
    rec = store.record_request(
        "web_search",
        {"query": "nvda"},
        message_id="m1",
        source=ToolSource.external,
        request_source=RequestSource.user,
    )

    assert rec.id.startswith("tool_")
    assert rec.status == ToolCallStatus.pending
    assert rec.source == ToolSource.external
    assert rec.request.method == "web_search"
    assert rec.request.parameters == {"query": "nvda"}
    assert rec.request.timestamp == clock.now
    assert rec.request.source == RequestSource.user
    assert rec.display_data.phase == DisplayPhase.detection
    assert rec.display_data.message == "Detected tool call: web_search"
    assert rec.response is None


def test_lifecycle_to_completed(store: ToolCallRecordStore) -> None:
    rec = store.record_request("create_file", {"path": "a.md"})

    running = store.mark_running(rec.id, progress=50)
    done = store.record_response(rec.id, result={"bytes": 3}, execution_time=12.4, metadata={"k": "v"})

    assert running.status == ToolCallStatus.running
    assert running.display_data.progress.current == 50
    assert done.status == ToolCallStatus.completed
    assert done.response.result == {"bytes": 3}
    assert done.response.status_code == 200
    assert done.response.metadata == {"k": "v"}
    assert done.display_data.icon == "✅"
    assert done.display_data.message == "create_file completed in 12ms"


def test_failure_on_pending_record_passes_through_running(store: ToolCallRecordStore) -> None:
    rec = store.record_request("missing_tool")

    failed = store.record_response(rec.id, error="Tool not found: 'missing_tool'", status_code=404)

    assert failed.status == ToolCallStatus.failed
    assert failed.response.error == "Tool not found: 'missing_tool'"
    assert failed.response.result is None
    assert failed.response.status_code == 404
    assert failed.display_data.phase == DisplayPhase.failed


def test_failure_defaults_to_status_500(store: ToolCallRecordStore) -> None:
    rec = store.record_request("t")
    store.mark_running(rec.id)

    assert store.record_response(rec.id, error="boom").response.status_code == 500


def test_completing_a_pending_record_is_illegal(store: ToolCallRecordStore) -> None:
    rec = store.record_request("t")

    with pytest.raises(InvalidTransitionError):
        store.record_response(rec.id, result=1)
    assert store.get(rec.id).status == ToolCallStatus.pending


def test_finished_records_do_not_move(store: ToolCallRecordStore) -> None:
    record_id = _completed(store, "t", 1)

    with pytest.raises(InvalidTransitionError):
        store.record_response(record_id, error="late failure")
    with pytest.raises(InvalidTransitionError):
        store.mark_running(record_id)


def test_mark_running_unknown_record_raises_key_error(store: ToolCallRecordStore) -> None:
    with pytest.raises(KeyError):
        store.mark_running("tool_0_missing")


def test_response_for_unknown_record_is_ignored(
    store: ToolCallRecordStore, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING, logger="planrunner.runtime.store")

    assert store.record_response("tool_0_missing", result=1) is None
    assert "Tool call record not found: tool_0_missing" in caplog.text


def test_accessors_return_copies(store: ToolCallRecordStore) -> None:
    rec = store.record_request("t", {"a": 1})

    copy = store.get(rec.id)
    copy.request.parameters["a"] = 2
    copy.status = ToolCallStatus.failed

    fresh = store.get(rec.id)
    assert fresh.request.parameters == {"a": 1}
    assert fresh.status == ToolCallStatus.pending
    assert store.get("unknown") is None


def test_records_for_message(store: ToolCallRecordStore) -> None:
    store.record_request("a", message_id="m1")
    store.record_request("b", message_id="m2")
    store.record_request("c", message_id="m1")

    assert [r.tool_name for r in store.records_for_message("m1")] == ["a", "c"]
    assert [r.tool_name for r in store.records()] == ["a", "b", "c"]


def test_statistics(clock: _Clock) -> None:
    store = ToolCallRecordStore(TelemetryConfig(recent_activity_limit=2), clock=clock)
    _completed(store, "a", 10)
    clock.advance(seconds=1)
    _completed(store, "b", 25)
    clock.advance(seconds=1)
    failed = store.record_request("c")
    store.record_response(failed.id, error="x", execution_time=1000)
    clock.advance(seconds=1)
    running = store.record_request("d")
    store.mark_running(running.id)
    clock.advance(seconds=1)
    store.record_request("e")

    stats = store.statistics()

    assert stats.total_calls == 5
    assert stats.completed_calls == 2
    assert stats.failed_calls == 1
    assert stats.running_calls == 1
    assert stats.pending_calls == 1
    assert stats.average_execution_time == 18
    assert [r.tool_name for r in stats.recent_activity] == ["e", "d"]


def test_statistics_of_empty_store(store: ToolCallRecordStore) -> None:
    stats = store.statistics()

    assert stats.total_calls == 0
    assert stats.average_execution_time == 0
    assert stats.recent_activity == []


def test_sweep_uses_retention_window(store: ToolCallRecordStore, clock: _Clock) -> None:
    old = store.record_request("old")
    clock.advance(hours=25)
    new = store.record_request("new")

    assert store.sweep() == 1
    assert old.id not in store
    assert new.id in store


def test_sweep_with_explicit_age(store: ToolCallRecordStore, clock: _Clock) -> None:
    store.record_request("a")
    clock.advance(minutes=10)
    store.record_request("b")
    clock.advance(minutes=1)

    assert store.sweep(timedelta(minutes=5)) == 1
    assert [r.tool_name for r in store.records()] == ["b"]


def test_capacity_evicts_oldest_finished_record_first(clock: _Clock) -> None:
    store = ToolCallRecordStore(TelemetryConfig(capacity=2), clock=clock)
    pending = store.record_request("pending")
    finished = _completed(store, "finished", 1)

    store.record_request("newest")

    assert len(store) == 2
    assert pending.id in store
    assert finished not in store


def test_capacity_never_evicts_in_flight_records(clock: _Clock, caplog: pytest.LogCaptureFixture) -> None:
    store = ToolCallRecordStore(TelemetryConfig(capacity=2), clock=clock)
    first = store.record_request("a")
    second = store.record_request("b")
    store.mark_running(second.id)

    with caplog.at_level(logging.WARNING, logger="planrunner.runtime.store"):
        third = store.record_request("c")

    assert len(store) == 3
    assert "no finished record to evict" in caplog.text

    store.mark_running(first.id)
    assert store.record_response(first.id, result="done", execution_time=1).status == ToolCallStatus.completed

    store.record_request("d")

    assert first.id not in store
    assert [r.tool_name for r in store.records()] == ["b", "c", "d"]
    assert third.id in store


def test_clear(store: ToolCallRecordStore) -> None:
    store.record_request("a")
    store.clear()

    assert len(store) == 0


def test_export_json_uses_camel_case_and_iso_timestamps(store: ToolCallRecordStore) -> None:
    _completed(store, "create_file", 5, message_id="m1")

    payload = json.loads(store.export_json())

    assert set(payload) == {"exportTime", "totalRecords", "statistics", "records"}
    assert payload["totalRecords"] == 1
    assert payload["statistics"]["completedCalls"] == 1
    record = payload["records"][0]
    assert record["toolName"] == "create_file"
    assert record["status"] == "completed"
    assert record["displayData"]["phase"] == "completed"
    assert record["request"]["messageId"] == "m1"
    assert record["response"]["statusCode"] == 200
    assert record["response"]["executionTime"] == 5
    parsed = datetime.fromisoformat(record["request"]["timestamp"])
    assert parsed == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
