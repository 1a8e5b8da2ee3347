from __future__ import annotations

"""Convenience factories for wiring planrunner.

These helpers read defaults from ``planrunner.core.config.settings`` so that
application wiring stays short. Tests and embedding applications can pass
explicit values instead and never touch the settings singleton.
"""

import logging
from typing import Awaitable, Callable, Iterable, Optional

from .core.config import Settings, TelemetryConfig, ValidatorConfig, settings
from .planning.classifiers import UrlListClassifier
from .planning.validator import PlanValidator
from .runtime.observer import StatusObserver
from .runtime.orchestrator import ToolExecutionOrchestrator
from .runtime.queue import ExecutionQueue
from .runtime.store import ToolCallRecordStore
from .service import PlanService
from .tools.base import ToolDescriptor
from .tools.builtin import GenerateContentTool
from .tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


def build_registry(tools: Iterable[ToolDescriptor] = ()) -> ToolRegistry:
    return ToolRegistry(tools)


def build_validator(
    registry: Optional[ToolRegistry] = None,
    *,
    config: Optional[ValidatorConfig] = None,
    classifier: Optional[UrlListClassifier] = None,
) -> PlanValidator:
    """Construct a ``PlanValidator`` over a snapshot of ``registry``."""
    return PlanValidator(
        registry.snapshot() if registry is not None else None,
        config=config if config is not None else settings.validator,
        classifier=classifier,
    )


def build_record_store(config: Optional[TelemetryConfig] = None) -> ToolCallRecordStore:
    return ToolCallRecordStore(config if config is not None else settings.telemetry)


def build_orchestrator(
    registry: ToolRegistry,
    *,
    store: Optional[ToolCallRecordStore] = None,
    observer: Optional[StatusObserver] = None,
    queue: Optional[ExecutionQueue] = None,
    app_settings: Optional[Settings] = None,
) -> ToolExecutionOrchestrator:
    """Construct a ``ToolExecutionOrchestrator`` with a store and queue sized from settings."""
    cfg = app_settings if app_settings is not None else settings
    return ToolExecutionOrchestrator(
        registry=registry,
        store=store if store is not None else ToolCallRecordStore(cfg.telemetry),
        observer=observer,
        queue=queue if queue is not None else ExecutionQueue(max_size=cfg.queue_max_size),
    )


def build_plan_service(
    registry: Optional[ToolRegistry] = None,
    *,
    generate: Optional[Callable[[str], Awaitable[str]]] = None,
    store: Optional[ToolCallRecordStore] = None,
    observer: Optional[StatusObserver] = None,
    classifier: Optional[UrlListClassifier] = None,
    app_settings: Optional[Settings] = None,
) -> PlanService:
    """
    Wire a registry, validator and orchestrator into a ``PlanService``.

    The validator always accepts content-generation steps, so the virtual
    tool is registered under the configured name unless the registry already
    carries one. Without ``generate`` such steps fail at run time with
    "not configured".
    """
    cfg = app_settings if app_settings is not None else settings
    reg = registry if registry is not None else ToolRegistry()
    content_tool = cfg.validator.content_generation_tool
    if not reg.has(content_tool):
        reg.register(GenerateContentTool(generate=generate, name=content_tool))
    elif generate is not None:
        logger.warning(f"Registry already provides {content_tool}; ignoring the generate callable")
    return PlanService(
        registry=reg,
        validator=build_validator(reg, config=cfg.validator, classifier=classifier),
        orchestrator=build_orchestrator(reg, store=store, observer=observer, app_settings=cfg),
    )
