"""Workflow engine: the entry point triggering workflows."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, List, Optional

from .config import HookflowConfig
from .continuations import ContinuationRegistry
from .contracts import WorkflowDefinition
from .discovery import discover_workflows
from .dispatch import StageDispatcher
from .jobs import JobRegistry, build_job_manifest, load_job_handlers
from .listener import CompletionListener
from .queues import BaseQueue, get_queue
from .requirements import RequirementError, check_requirements

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Orchestrates workflow triggers for one process.

    The engine owns the continuation registry, the stage dispatcher and the
    completion listener wired to its queue. After :meth:`init` it consumes
    job outcomes in the background until :meth:`close`, so the process that
    triggers workflows is the one dispatching their ``onSuccess``/``onFail``
    children.
    """

    def __init__(
        self,
        config: HookflowConfig,
        queue: Optional[BaseQueue] = None,
        registry: Optional[ContinuationRegistry] = None,
        jobs: Optional[JobRegistry] = None,
    ) -> None:
        self.config = config
        self.registry = registry or ContinuationRegistry()
        self.jobs = jobs
        self._queue = queue
        self._dispatcher: Optional[StageDispatcher] = None
        self._outcomes_task: Optional[asyncio.Task] = None
        self._initialized = False

    @property
    def queue(self) -> BaseQueue:
        if self._queue is None:
            raise RuntimeError("WorkflowEngine.init() has not been called")
        return self._queue

    @property
    def dispatcher(self) -> StageDispatcher:
        if self._dispatcher is None:
            raise RuntimeError("WorkflowEngine.init() has not been called")
        return self._dispatcher

    async def init(self, consume_outcomes: bool = True) -> None:
        """Validate configuration, prepare the queue and register job handlers.

        Args:
            consume_outcomes: Empty the queue and start consuming job outcomes.
                Worker processes pass ``False``: they only execute jobs and
                leave the outcomes to the process that triggered them.

        Raises:
            ConfigurationError: If the workflows or jobs directory is missing.
        """
        if self._initialized:
            return

        self.config.validate_paths()

        if self._queue is None:
            self._queue = get_queue(config=self.config)
        if consume_outcomes:
            await self._queue.empty()

        if self.jobs is None:
            manifest = build_job_manifest(
                self.config.jobs_directory, namespace=self.config.job_namespace
            )
            self.jobs = load_job_handlers(manifest)
        for job_type, handler in self.jobs.items():
            self._queue.register_handler(job_type, handler)

        self._dispatcher = StageDispatcher(self._queue, self.registry)
        if consume_outcomes:
            CompletionListener(self._dispatcher).attach(self._queue)
            self._outcomes_task = asyncio.create_task(self._consume_outcomes())
        self._initialized = True

    async def _consume_outcomes(self) -> None:
        try:
            await self.queue.listen()
        except Exception:
            logger.exception(f"Stopped consuming job outcomes on queue {self.queue.name}")

    async def close(self) -> None:
        if self._outcomes_task is not None:
            self._outcomes_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._outcomes_task
            self._outcomes_task = None
        if self._queue is not None:
            await self._queue.disconnect()

    async def load_workflows(self) -> List[WorkflowDefinition]:
        return await discover_workflows(self.config.workflows_directory)

    async def register(self, workflow_id: str, data: Any = None) -> int:
        """Trigger every workflow definition whose id is ``workflow_id``.

        Each matching definition is checked and dispatched independently;
        failures are logged and never raised to the caller.

        Returns:
            Number of definitions whose stages were dispatched.
        """
        dispatcher = self.dispatcher
        dispatched = 0

        for workflow in await self.load_workflows():
            if workflow.id != workflow_id:
                continue
            try:
                check_requirements(workflow, data)
                await dispatcher.dispatch_workflow(workflow, data)
                dispatched += 1
            except RequirementError as exc:
                logger.warning(exc.reason)
            except Exception:
                logger.exception(f"[{workflow.name}] Failed to dispatch workflow {workflow.id}")

        return dispatched

    trigger = register
