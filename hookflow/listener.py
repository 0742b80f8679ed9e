"""Completion listener feeding queue outcomes into the continuation registry."""

from __future__ import annotations

import logging
from typing import Any

from .continuations import Outcome
from .contracts import Job
from .dispatch import StageDispatcher
from .queues import BaseQueue

logger = logging.getLogger(__name__)


class CompletionListener:
    """Subscribes to a queue's completed and failed notifications."""

    def __init__(self, dispatcher: StageDispatcher) -> None:
        self._dispatcher = dispatcher

    def attach(self, queue: BaseQueue) -> None:
        queue.on_completed(self.on_completed)
        queue.on_failed(self.on_failed)

    async def on_completed(self, job: Job, result: Any) -> None:
        await self._resolve(Outcome.SUCCESS, job, result)

    async def on_failed(self, job: Job, error: Any) -> None:
        # errors travel inside the child's envelope, keep them serialisable
        if isinstance(error, BaseException):
            error = str(error)
        await self._resolve(Outcome.FAILURE, job, error)

    async def _resolve(self, outcome: Outcome, job: Job, value: Any) -> None:
        stage_id = job.options.stage_id
        if not stage_id:
            logger.debug(f"Job {job.name} ({job.id}) carries no stage id")
            return
        await self._dispatcher.resolve(outcome, stage_id, value)
