"""planrunner: validate and execute LLM tool-call plans.

A plan is an ordered list of steps, each naming a tool and its input. Inputs
may reference earlier steps' results through ``{{stepK.field}}`` placeholders.

- ``planning``: static validation, auto-fix and reporting.
- ``runtime``: queued, strictly sequential, fail-fast execution with
  per-call telemetry.
- ``tools``: tool descriptors and the registry.
- ``service``/``factory``: ready-made wiring.

Logging is not configured on import; call ``setup_logging()`` from the host
application.
"""

from .core import get_logger, settings, setup_logging
from .factory import build_orchestrator, build_plan_service, build_registry, build_validator
from .planning import PlanValidator, UrlListClassifier, format_validation_result
from .runtime import ExecutionQueue, ToolCallRecordStore, ToolExecutionOrchestrator
from .schemas import PlanStep, ToolCall, ValidationResult
from .service import PlanCheck, PlanService
from .tools import FunctionTool, ToolOutcome, ToolRegistry

__all__ = [
    "get_logger",
    "settings",
    "setup_logging",
    "build_orchestrator",
    "build_plan_service",
    "build_registry",
    "build_validator",
    "PlanValidator",
    "UrlListClassifier",
    "format_validation_result",
    "ExecutionQueue",
    "ToolCallRecordStore",
    "ToolExecutionOrchestrator",
    "PlanStep",
    "ToolCall",
    "ValidationResult",
    "PlanCheck",
    "PlanService",
    "FunctionTool",
    "ToolOutcome",
    "ToolRegistry",
]
