"""In-memory queue for testing and single-process use."""

from __future__ import annotations

import asyncio
import heapq
import itertools
import math
import uuid
from typing import List, Optional, Tuple

from ..constants import DEFAULT_QUEUE_NAME
from ..contracts import DispatchOptions, Job, JobEnvelope
from .base import BaseQueue


class InMemoryQueue(BaseQueue):
    """Simple in-process queue executing jobs on the running event loop.

    Jobs run lowest ``priority`` first, then in submission order; jobs without
    a priority run after prioritised ones.
    """

    def __init__(self, name: str = DEFAULT_QUEUE_NAME) -> None:
        super().__init__(name)
        self._pending: List[Tuple[float, int, Job]] = []
        self._counter = itertools.count()
        self._lock = asyncio.Lock()
        self.submitted: List[Job] = []

    async def empty(self) -> None:
        async with self._lock:
            self._pending.clear()

    async def submit(
        self, job_type: str, envelope: JobEnvelope, options: DispatchOptions
    ) -> Job:
        job = Job(id=uuid.uuid4().hex, name=job_type, data=envelope, options=options)
        priority = options.priority if options.priority is not None else math.inf
        async with self._lock:
            heapq.heappush(self._pending, (priority, next(self._counter), job))
            self.submitted.append(job)
        return job

    async def _next_job(self) -> Optional[Job]:
        async with self._lock:
            if not self._pending:
                return None
            return heapq.heappop(self._pending)[2]

    async def run_next(self) -> Optional[Job]:
        """Execute the next queued job and report its outcome."""
        job = await self._next_job()
        if job is None:
            return None
        succeeded, value = await self.execute(job)
        if succeeded:
            await self.notify_completed(job, value)
        else:
            await self.notify_failed(job, value)
        return job

    async def run_pending(self) -> int:
        """Execute jobs until the queue is drained; return how many ran."""
        count = 0
        while await self.run_next() is not None:
            count += 1
        return count

    async def process(self, lifespan: Optional[float] = None) -> None:
        start_time = asyncio.get_event_loop().time() if lifespan else None

        while True:
            if lifespan and start_time:
                elapsed = asyncio.get_event_loop().time() - start_time
                if elapsed >= lifespan:
                    break

            if await self.run_next() is not None:
                continue

            await asyncio.sleep(0.1)

    @property
    def size(self) -> int:
        return len(self._pending)
