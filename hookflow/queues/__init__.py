"""Queue factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import HookflowConfig, load_config
from .base import BaseQueue, JobHandler, OutcomeCallback
from .inmemory import InMemoryQueue


def get_queue(
    backend: Optional[str] = None, config: Optional[HookflowConfig] = None
) -> BaseQueue:
    """Factory function to get the configured queue backend."""

    config = config or load_config()
    backend = (
        backend or os.getenv("HOOKFLOW_QUEUE_BACKEND") or config.queue.backend
    ).lower()

    if backend == "inmemory":
        return InMemoryQueue(name=config.queue.name)
    elif backend == "redis":
        from .redis import RedisQueue

        redis_conf = config.queue.redis.resolved()
        return RedisQueue(
            name=config.queue.name,
            host=redis_conf.host,
            port=redis_conf.port,
            db=redis_conf.db,
            password=redis_conf.password,
        )
    else:
        raise ValueError(f"Unsupported queue backend: {backend}")


__all__ = ["BaseQueue", "InMemoryQueue", "JobHandler", "OutcomeCallback", "get_queue"]
