from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

from .constants import DEFAULT_QUEUE_NAME, DEFAULT_REDIS_HOST, DEFAULT_REDIS_PORT

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when required settings are missing."""


class RedisConfig(BaseModel):
    """Connection settings for the Redis broker."""

    host: Optional[str] = None
    port: Optional[int] = None
    db: int = 0
    password: Optional[str] = None

    def resolved(self) -> "RedisConfig":
        """Return a copy with the default host and port filled in."""
        host = self.host
        port = self.port
        if not host:
            logger.warning(
                f"Missing environment REDIS_HOST, default used ({DEFAULT_REDIS_HOST})"
            )
            host = DEFAULT_REDIS_HOST
        if not port:
            logger.warning(
                f"Missing environment REDIS_PORT, default used ({DEFAULT_REDIS_PORT})"
            )
            port = DEFAULT_REDIS_PORT
        return self.model_copy(update={"host": host, "port": port})


class QueueConfig(BaseModel):
    """Queue backend settings."""

    backend: Literal["inmemory", "redis"] = "inmemory"
    name: str = DEFAULT_QUEUE_NAME
    redis: RedisConfig = Field(default_factory=RedisConfig)


class HookflowConfig(BaseModel):
    """Top-level configuration model."""

    workflows_directory: Optional[Path] = None
    jobs_directory: Optional[Path] = None
    name: Optional[str] = None
    from_dependencies: bool = False
    queue: QueueConfig = Field(default_factory=QueueConfig)

    def validate_paths(self) -> None:
        """Raise ``ConfigurationError`` when a required root path is missing."""
        if not self.workflows_directory:
            raise ConfigurationError("Workflows directory missing")
        if not self.jobs_directory:
            raise ConfigurationError("Jobs directory missing")

    @property
    def job_namespace(self) -> Optional[str]:
        """Prefix applied to job types loaded from a dependency package."""
        if self.from_dependencies and self.name:
            return self.name
        return None


def load_config(path: Optional[str] = None, **overrides: Any) -> HookflowConfig:
    """Load configuration from YAML file and environment.

    Args:
        path: Optional path to config file. Falls back to HOOKFLOW_CONFIG env
            variable or 'hookflow.yaml' in the current directory.
        overrides: Top-level values that take precedence over the file,
            e.g. ``workflows_directory``.
    """

    load_dotenv(find_dotenv(usecwd=True))

    config_path = path or os.getenv("HOOKFLOW_CONFIG", "hookflow.yaml")
    data: dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    data.update({key: value for key, value in overrides.items() if value is not None})

    config = HookflowConfig(**data)

    if not config.workflows_directory and os.getenv("WORKFLOWS_DIRECTORY"):
        config.workflows_directory = Path(os.environ["WORKFLOWS_DIRECTORY"])
    if not config.jobs_directory and os.getenv("JOBS_DIRECTORY"):
        config.jobs_directory = Path(os.environ["JOBS_DIRECTORY"])

    redis_conf = config.queue.redis
    if os.getenv("REDIS_HOST"):
        redis_conf.host = os.environ["REDIS_HOST"]
    if os.getenv("REDIS_PORT"):
        redis_conf.port = int(os.environ["REDIS_PORT"])
    if os.getenv("QUEUE_NAME"):
        config.queue.name = os.environ["QUEUE_NAME"]
    return config
