"""Redis queue for cross-process job dispatch."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, Optional

import redis.asyncio as redis
from pydantic import ValidationError

from ..constants import DEFAULT_QUEUE_NAME, DEFAULT_REDIS_HOST, DEFAULT_REDIS_PORT, REDIS_KEY_PREFIX
from ..contracts import DispatchOptions, Job, JobEnvelope
from .base import BaseQueue

logger = logging.getLogger(__name__)


class RedisQueue(BaseQueue):
    """Redis-list backed queue.

    Jobs are pushed onto ``hookflow:<name>:wait``. Workers running
    :meth:`process` pop them, execute the handler and push the outcome onto
    ``hookflow:<name>:events``, which the orchestrating process consumes with
    :meth:`listen`. Only the process holding the continuations should listen.

    An already built ``client`` may be passed instead of connection settings.
    """

    def __init__(
        self,
        name: str = DEFAULT_QUEUE_NAME,
        host: str = DEFAULT_REDIS_HOST,
        port: int = DEFAULT_REDIS_PORT,
        db: int = 0,
        password: Optional[str] = None,
        client: Optional[Any] = None,
    ) -> None:
        super().__init__(name)
        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self._redis: Optional[Any] = client

    @property
    def wait_key(self) -> str:
        return f"{REDIS_KEY_PREFIX}:{self.name}:wait"

    @property
    def events_key(self) -> str:
        return f"{REDIS_KEY_PREFIX}:{self.name}:events"

    async def connect(self) -> None:
        """Connect to Redis."""
        self._redis = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )
        # Test connection
        await self._redis.ping()

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def _client(self) -> Any:
        if not self._redis:
            await self.connect()
        return self._redis

    async def empty(self) -> None:
        client = await self._client()
        await client.delete(self.wait_key)

    async def submit(
        self, job_type: str, envelope: JobEnvelope, options: DispatchOptions
    ) -> Job:
        """Push job onto the wait list."""
        client = await self._client()
        job = Job(id=uuid.uuid4().hex, name=job_type, data=envelope, options=options)
        await client.lpush(self.wait_key, job.to_json())
        return job

    async def process(self, lifespan: Optional[float] = None) -> None:
        """Pop jobs, execute them and publish their outcome events."""
        client = await self._client()
        start_time = asyncio.get_event_loop().time() if lifespan else None

        while True:
            if lifespan and start_time:
                elapsed = asyncio.get_event_loop().time() - start_time
                if elapsed >= lifespan:
                    break

            result = await client.brpop(self.wait_key, timeout=1)
            if not result:
                continue

            _, job_json = result
            try:
                job = Job.from_json(job_json)
            except ValidationError as e:
                logger.warning(f"Failed to parse job: {e}")
                continue

            succeeded, value = await self.execute(job)
            event = {
                "status": "completed" if succeeded else "failed",
                "job": json.loads(job.to_json()),
                "value": value if succeeded else str(value),
            }
            await client.lpush(self.events_key, json.dumps(event, default=str))

    async def listen(self, lifespan: Optional[float] = None) -> None:
        """Consume outcome events and fire the local callbacks."""
        client = await self._client()
        start_time = asyncio.get_event_loop().time() if lifespan else None

        while True:
            if lifespan and start_time:
                elapsed = asyncio.get_event_loop().time() - start_time
                if elapsed >= lifespan:
                    break

            result = await client.brpop(self.events_key, timeout=1)
            if not result:
                continue

            _, event_json = result
            try:
                event = json.loads(event_json)
                job = Job.model_validate(event["job"])
            except (json.JSONDecodeError, KeyError, ValidationError) as e:
                logger.warning(f"Failed to parse job event: {e}")
                continue

            if event.get("status") == "completed":
                await self.notify_completed(job, event.get("value"))
            else:
                await self.notify_failed(job, event.get("value"))
