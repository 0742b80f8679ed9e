"""Base queue interface for hookflow job dispatch."""

from __future__ import annotations

import abc
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..contracts import DispatchOptions, Job, JobEnvelope

logger = logging.getLogger(__name__)

JobHandler = Callable[[Job], Union[Any, Awaitable[Any]]]
OutcomeCallback = Callable[[Job, Any], Awaitable[None]]


class BaseQueue(metaclass=abc.ABCMeta):
    """Abstract queue backend.

    Subclasses store submitted jobs and execute them with the handler
    registered for the job type. Outcomes are reported to the callbacks
    registered through :meth:`on_completed` and :meth:`on_failed`.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: Dict[str, JobHandler] = {}
        self._completed_callbacks: List[OutcomeCallback] = []
        self._failed_callbacks: List[OutcomeCallback] = []

    async def connect(self) -> None:
        """Open connection to broker (no-op by default)."""
        pass

    async def disconnect(self) -> None:
        """Close connection to broker (no-op by default)."""
        pass

    @abc.abstractmethod
    async def empty(self) -> None:
        """Drop all jobs waiting to be processed."""
        raise NotImplementedError

    @abc.abstractmethod
    async def submit(
        self, job_type: str, envelope: JobEnvelope, options: DispatchOptions
    ) -> Job:
        """Enqueue a job of ``job_type``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def process(self, lifespan: Optional[float] = None) -> None:
        """Run the worker loop executing queued jobs.

        Args:
            lifespan: Maximum time in seconds to keep processing. If None, runs indefinitely.
        """
        raise NotImplementedError

    async def listen(self, lifespan: Optional[float] = None) -> None:
        """Consume outcomes published by workers running in other processes.

        Backends executing jobs in-process report outcomes to the callbacks
        directly, so the default returns immediately.
        """
        return None

    def register_handler(self, job_type: str, handler: JobHandler) -> None:
        """Register the callable executing jobs of ``job_type``."""
        self._handlers[job_type] = handler

    def on_completed(self, callback: OutcomeCallback) -> None:
        self._completed_callbacks.append(callback)

    def on_failed(self, callback: OutcomeCallback) -> None:
        self._failed_callbacks.append(callback)

    async def execute(self, job: Job) -> tuple[bool, Any]:
        """Run the handler for ``job``; return ``(succeeded, result_or_error)``."""
        handler = self._handlers.get(job.name)
        if handler is None:
            return False, LookupError(f"No handler registered for job {job.name}")
        try:
            result = handler(job)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.warning(f"Job {job.name} ({job.id}) failed: {exc}")
            return False, exc
        return True, result

    async def notify_completed(self, job: Job, result: Any) -> None:
        await self._fire(self._completed_callbacks, job, result)

    async def notify_failed(self, job: Job, error: Any) -> None:
        await self._fire(self._failed_callbacks, job, error)

    async def _fire(self, callbacks: List[OutcomeCallback], job: Job, value: Any) -> None:
        for callback in callbacks:
            try:
                await callback(job, value)
            except Exception:
                logger.exception(f"Outcome callback failed for job {job.name} ({job.id})")
