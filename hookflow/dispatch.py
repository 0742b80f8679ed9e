"""Stage dispatcher for hookflow."""

from __future__ import annotations

import logging
import uuid
from typing import Any, List, Optional

from .continuations import (
    ContinuationContext,
    ContinuationRegistry,
    Outcome,
    PendingContinuation,
    StageRun,
)
from .contracts import (
    DispatchOptions,
    JobEnvelope,
    StageDefinition,
    StageSnapshot,
    WorkflowDefinition,
    WorkflowSnapshot,
)
from .queues import BaseQueue

logger = logging.getLogger(__name__)


def build_envelope(
    stage: StageDefinition,
    trigger_data: Any,
    previous: Any,
    workflow: WorkflowDefinition,
) -> JobEnvelope:
    """Build the payload submitted to the queue for ``stage``."""
    return JobEnvelope(
        body=trigger_data,
        previous=previous,
        workflow=WorkflowSnapshot.of(workflow),
        stage=StageSnapshot(id=stage.id, name=stage.name, data=stage.data),
    )


class StageDispatcher:
    """Submits stages to the queue and wires their continuations."""

    def __init__(self, queue: BaseQueue, registry: ContinuationRegistry) -> None:
        self._queue = queue
        self._registry = registry

    @property
    def registry(self) -> ContinuationRegistry:
        return self._registry

    async def dispatch(
        self,
        stage: StageDefinition,
        trigger_data: Any,
        previous: Any,
        workflow: WorkflowDefinition,
    ) -> str:
        """Register the children of ``stage`` and enqueue it.

        Continuations are registered before the job is submitted, so an
        outcome reported while the submission is still in flight finds them.

        Args:
            stage: Stage to dispatch.
            trigger_data: Original trigger payload, forwarded as the job body.
            previous: Result or error of the preceding stage, ``None`` for
                top-level stages.
            workflow: Workflow the stage belongs to.

        Returns:
            Correlation identifier the queue reports back on completion.

        Raises:
            Exception: Queue submission errors propagate unchanged; the
                continuations registered for the stage are dropped first.
        """
        correlation_id = uuid.uuid4().hex
        envelope = build_envelope(stage, trigger_data, previous, workflow)
        options = DispatchOptions(
            stage_id=correlation_id, priority=stage.priority, repeat=stage.repeat
        )

        run: Optional[StageRun] = None
        if stage.has_children:
            run = StageRun(correlation_id=correlation_id, stage_id=stage.id)
            context = ContinuationContext(trigger_data=trigger_data, workflow=workflow)
            continuations = [
                PendingContinuation(
                    parent_stage_id=correlation_id,
                    outcome=outcome,
                    child_stage=child,
                    context=context,
                    run_id=run.run_id,
                )
                for outcome, child in (
                    (Outcome.SUCCESS, stage.on_success),
                    (Outcome.FAILURE, stage.on_fail),
                )
                if child is not None
            ]
            await self._registry.register(run, continuations)

        logger.info(f"[{workflow.name}] Stage({stage.name}) :: Add job({stage.job})")
        try:
            await self._queue.submit(stage.job, envelope, options)
        except Exception:
            if run is not None:
                await self._registry.discard(run)
            raise

        return correlation_id

    async def dispatch_workflow(
        self, workflow: WorkflowDefinition, trigger_data: Any
    ) -> List[str]:
        """Dispatch every top-level stage of ``workflow``."""
        return [
            await self.dispatch(stage, trigger_data, None, workflow)
            for stage in workflow.stages
        ]

    async def resolve(
        self, outcome: Outcome, correlation_id: str, value: Any = None
    ) -> Optional[str]:
        """Dispatch the child waiting on ``correlation_id`` for ``outcome``."""
        entry = await self._registry.take(outcome, correlation_id, value)
        if entry is None:
            return None

        logger.info(
            f"[{entry.context.workflow.name}] Stage {correlation_id} {outcome.value}, "
            f"continuing with {entry.child_stage.name}"
        )
        try:
            return await self.dispatch(
                entry.child_stage,
                entry.context.trigger_data,
                value,
                entry.context.workflow,
            )
        finally:
            await self._registry.settle(entry)
