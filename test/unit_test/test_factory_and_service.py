from __future__ import annotations

from typing import Any, Dict, List

import pytest

from planrunner.core.config import Settings
from planrunner.factory import build_orchestrator, build_plan_service, build_record_store, build_validator
from planrunner.runtime.errors import PlanRejectedError, ToolExecutionError
from planrunner.runtime.observer import CollectingObserver
from planrunner.runtime.orchestrator import ToolExecutionOrchestrator
from planrunner.runtime.queue import ExecutionQueue
from planrunner.runtime.store import ToolCallRecordStore
from planrunner.schemas.plan import PlanStep
from planrunner.schemas.validation import ValidationErrorKind
from planrunner.service import PlanService
from planrunner.tools import FunctionTool, ToolRegistry

OBJ_CONTENT = {"type": "object", "properties": {"content": {"type": "string"}}}


@pytest.fixture
def app_settings() -> Settings:
    return Settings(_env_file=None, record_capacity=50, url_consumer_tool="fetch_web_content")


@pytest.fixture
def service(registry: ToolRegistry, app_settings: Settings) -> PlanService:
    return build_plan_service(registry, observer=CollectingObserver(), app_settings=app_settings)


def _search_then_fetch() -> list[Dict[str, Any]]:
    return [
        {"step_id": "step1", "tool": "web_search", "input": {"query": "nvda"}, "outputSchema": {"type": "array"}},
        {"step_id": "step2", "tool": "fetch_web_content", "input": {"urls": "{{step1}}"}, "outputSchema": OBJ_CONTENT},
    ]


def _news_with_bad_field() -> list[Dict[str, Any]]:
    return [
        {
            "step_id": "step1",
            "tool": "get_financial_news",
            "input": {"ticker": "NVDA"},
            "outputSchema": {"type": "object", "properties": {"articles": {"type": "array"}}},
        },
        {
            "step_id": "step2",
            "tool": "create",
            "input": {"path": "news.md", "content": "{{step1.output.results}}"},
            "outputSchema": OBJ_CONTENT,
        },
    ]


def test_build_validator_uses_registry_snapshot(registry: ToolRegistry) -> None:
    validator = build_validator(registry)

    assert validator.descriptor("web_search") is registry.get("web_search")
    assert validator.consumer_tool == "fetch_web_content"


def test_build_orchestrator_sizes_store_from_settings(registry: ToolRegistry) -> None:
    cfg = Settings(_env_file=None, record_capacity=1)
    orch = build_orchestrator(registry, app_settings=cfg)

    first = orch.store.record_request("a")
    orch.store.mark_running(first.id)
    orch.store.record_response(first.id, result="done")
    orch.store.record_request("b")

    assert len(orch.store) == 1
    assert orch.queue_status().queue_length == 0


def test_build_orchestrator_keeps_injected_empty_store_and_queue(registry: ToolRegistry) -> None:
    store = ToolCallRecordStore()
    queue = ExecutionQueue()

    orch = build_orchestrator(registry, store=store, queue=queue)

    assert orch.store is store
    assert orch.queue is queue


@pytest.mark.asyncio
async def test_injected_empty_store_receives_records(registry: ToolRegistry) -> None:
    store = ToolCallRecordStore()
    orch = ToolExecutionOrchestrator(registry=registry, store=store, observer=CollectingObserver())

    await orch.execute_tool_calls_orchestration(
        [{"tool": "create_file", "parameters": {"path": "a.md"}}], message_id="m1"
    )

    assert orch.store is store
    assert [r.tool_name for r in store.records_for_message("m1")] == ["create_file"]
    assert store.statistics().completed_calls == 1


def test_build_record_store_defaults() -> None:
    store = build_record_store()

    assert len(store) == 0


def test_check_plan_reports_valid_plan(service: PlanService) -> None:
    check = service.check_plan(_search_then_fetch())

    assert check.valid
    assert not check.fixed
    assert "✅ Plan is valid" in check.report
    assert [s.step_id for s in check.steps] == ["step1", "step2"]


def test_check_plan_auto_fixes_and_revalidates(service: PlanService) -> None:
    check = service.check_plan(_news_with_bad_field())

    assert check.valid
    assert check.fixed
    assert len(check.changes) == 2
    assert check.steps[1].input["content"] == "{{step1.articles}}"


def test_check_plan_without_auto_fix_keeps_errors(service: PlanService) -> None:
    check = service.check_plan(_news_with_bad_field(), auto_fix=False)

    assert not check.valid
    assert [e.kind for e in check.result.errors] == [ValidationErrorKind.invalid_field]
    assert "❌ Plan is invalid" in check.report


def test_check_plan_sees_tools_registered_later(registry: ToolRegistry, service: PlanService) -> None:
    plan = [{"step_id": "step1", "tool": "late_tool", "input": {}, "outputSchema": OBJ_CONTENT}]
    assert not service.check_plan(plan).valid

    async def _late(params: Dict[str, Any]) -> Any:
        return {"content": "late"}

    registry.register(FunctionTool(name="late_tool", func=_late, output_schema=OBJ_CONTENT))

    assert service.check_plan(plan).valid


@pytest.mark.asyncio
async def test_execute_plan_feeds_search_results_to_fetch(service: PlanService, recorders) -> None:
    result = await service.execute_plan(_search_then_fetch(), message_id="m1")

    assert recorders["web_search"].calls == [{"query": "nvda"}]
    assert recorders["fetch_web_content"].calls == [{"urls": [{"title": "A", "url": "https://a.example"}]}]
    assert [r.tool for r in result.results] == ["web_search", "fetch_web_content"]
    assert len(service.orchestrator.store.records_for_message("m1")) == 2


@pytest.mark.asyncio
async def test_execute_plan_runs_fixed_plan_with_aliases(service: PlanService, recorders) -> None:
    await service.execute_plan(_news_with_bad_field())

    assert recorders["create_file"].calls == [{"path": "news.md", "content": [{"headline": "Up"}]}]


@pytest.mark.asyncio
async def test_execute_plan_rejects_invalid_plan(service: PlanService, recorders) -> None:
    plan = [{"step_id": "step1", "tool": "web_search", "input": {"query": "x"}, "outputSchema": {"type": "array"}}]

    with pytest.raises(PlanRejectedError) as exc:
        await service.execute_plan(plan)

    assert [e.kind for e in exc.value.result.errors] == [ValidationErrorKind.missing_dependency]
    assert recorders["web_search"].calls == []


@pytest.mark.asyncio
async def test_execute_plan_wraps_non_dict_inputs(app_settings: Settings) -> None:
    received = []

    async def _raw(params: Dict[str, Any]) -> Any:
        received.append(params)
        return {"content": "ok"}

    registry = ToolRegistry([FunctionTool(name="raw", func=_raw, output_schema=OBJ_CONTENT)])
    service = build_plan_service(registry, observer=CollectingObserver(), app_settings=app_settings)

    await service.execute_plan(
        [
            PlanStep(step_id="step1", tool="raw", input="just text", output_schema=OBJ_CONTENT),
            PlanStep(step_id="step2", tool="raw", output_schema=OBJ_CONTENT),
        ]
    )

    assert received == [{"input": "just text"}, {}]


@pytest.mark.asyncio
async def test_execute_plan_propagates_tool_failure(app_settings: Settings) -> None:
    async def _fails(params: Dict[str, Any]) -> Any:
        return {"success": False, "error": "connection reset by peer"}

    registry = ToolRegistry([FunctionTool(name="flaky", func=_fails, output_schema=OBJ_CONTENT)])
    observer = CollectingObserver()
    service = build_plan_service(registry, observer=observer, app_settings=app_settings)

    with pytest.raises(ToolExecutionError, match="connection reset by peer"):
        await service.execute_plan([{"step_id": "step1", "tool": "flaky", "input": {}, "outputSchema": OBJ_CONTENT}])

    (failed,) = observer.of_phase("failed")
    assert failed.hint.startswith("Network problem")


@pytest.mark.asyncio
async def test_empty_registry_stays_live_after_wiring(app_settings: Settings) -> None:
    reg = ToolRegistry()
    store = ToolCallRecordStore()
    service = build_plan_service(reg, store=store, observer=CollectingObserver(), app_settings=app_settings)

    async def _late(params: Dict[str, Any]) -> Any:
        return {"content": "late"}

    reg.register(FunctionTool(name="late_tool", func=_late, output_schema=OBJ_CONTENT))
    plan = [{"step_id": "step1", "tool": "late_tool", "input": {}, "outputSchema": OBJ_CONTENT}]
    result = await service.execute_plan(plan)

    assert result.results[0].result == {"content": "late"}
    assert service.orchestrator.store is store
    assert len(store) == 1


@pytest.mark.asyncio
async def test_generate_content_step_runs_with_host_generator(app_settings: Settings) -> None:
    prompts: List[str] = []

    async def _generate(prompt: str) -> str:
        prompts.append(prompt)
        return "# Report"

    reg = ToolRegistry()
    service = build_plan_service(reg, generate=_generate, observer=CollectingObserver(), app_settings=app_settings)

    result = await service.execute_plan(
        [
            {
                "step_id": "step1",
                "tool": "generate_content",
                "input": {"prompt": "Write a report"},
                "outputSchema": {"type": "string"},
            }
        ]
    )

    assert reg.has("generate_content")
    assert prompts == ["Write a report"]
    assert result.results[0].result == "# Report"


@pytest.mark.asyncio
async def test_generate_content_without_generator_fails_at_run_time(app_settings: Settings) -> None:
    service = build_plan_service(ToolRegistry(), observer=CollectingObserver(), app_settings=app_settings)
    plan = [
        {"step_id": "step1", "tool": "generate_content", "input": {"prompt": "x"}, "outputSchema": {"type": "string"}}
    ]

    assert service.check_plan(plan).valid
    with pytest.raises(ToolExecutionError, match="generate_content not configured"):
        await service.execute_plan(plan)


def test_existing_content_tool_is_not_replaced(app_settings: Settings) -> None:
    async def _custom(params: Dict[str, Any]) -> Any:
        return "custom"

    custom = FunctionTool(name="generate_content", func=_custom, output_schema={"type": "string"})
    reg = ToolRegistry([custom])

    build_plan_service(reg, observer=CollectingObserver(), app_settings=app_settings)

    assert reg.get("generate_content") is custom
