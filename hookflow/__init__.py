"""hookflow: event-triggered, requirement-gated workflows over a job queue."""

from __future__ import annotations

from typing import Any, Optional

from .config import ConfigurationError, HookflowConfig, load_config
from .continuations import ContinuationRegistry, Outcome, StageRunState
from .contracts import JobEnvelope, StageDefinition, WorkflowDefinition
from .dispatch import StageDispatcher
from .engine import WorkflowEngine
from .queues import get_queue
from .requirements import RequirementError, evaluate

__version__ = "0.1.0"

_engine: WorkflowEngine | None = None


async def init(config: Optional[HookflowConfig] = None) -> WorkflowEngine:
    """Create and initialise the process-wide engine."""
    global _engine
    engine = WorkflowEngine(config or load_config())
    await engine.init()
    _engine = engine
    return engine


async def register(workflow_id: str, data: Any = None) -> int:
    """Trigger ``workflow_id`` on the engine created by :func:`init`."""
    if _engine is None:
        raise RuntimeError("hookflow.init() must be called before register()")
    return await _engine.register(workflow_id, data)


async def close() -> None:
    """Stop the engine created by :func:`init` and release its queue."""
    global _engine
    if _engine is not None:
        await _engine.close()
        _engine = None


__all__ = [
    "ConfigurationError",
    "ContinuationRegistry",
    "HookflowConfig",
    "JobEnvelope",
    "Outcome",
    "RequirementError",
    "StageDefinition",
    "StageDispatcher",
    "StageRunState",
    "WorkflowDefinition",
    "WorkflowEngine",
    "close",
    "evaluate",
    "get_queue",
    "init",
    "load_config",
    "register",
]
