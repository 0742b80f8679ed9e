"""Tests for configuration loading."""

from pathlib import Path

import pytest

from hookflow.config import ConfigurationError, HookflowConfig, load_config
from hookflow.queues import get_queue
from hookflow.queues.redis import RedisQueue

CONFIG_ENV = (
    "HOOKFLOW_CONFIG",
    "HOOKFLOW_QUEUE_BACKEND",
    "WORKFLOWS_DIRECTORY",
    "JOBS_DIRECTORY",
    "REDIS_HOST",
    "REDIS_PORT",
    "QUEUE_NAME",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in CONFIG_ENV:
        monkeypatch.delenv(name, raising=False)
    # keep a stray .env or hookflow.yaml in the working directory out of the way
    monkeypatch.chdir(tmp_path)


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
workflows_directory: /srv/workflows
jobs_directory: /srv/jobs
queue:
  backend: redis
  name: deploys
  redis:
    host: testhost
    port: 1234
"""
    )
    monkeypatch.setenv("HOOKFLOW_CONFIG", str(config_path))

    config = load_config()
    assert config.workflows_directory == Path("/srv/workflows")
    assert config.jobs_directory == Path("/srv/jobs")
    assert config.queue.backend == "redis"
    assert config.queue.name == "deploys"
    assert config.queue.redis.host == "testhost"
    assert config.queue.redis.port == 1234


def test_environment_fills_missing_paths(monkeypatch):
    monkeypatch.setenv("WORKFLOWS_DIRECTORY", "/env/workflows")
    monkeypatch.setenv("JOBS_DIRECTORY", "/env/jobs")

    config = load_config()
    assert config.workflows_directory == Path("/env/workflows")
    assert config.jobs_directory == Path("/env/jobs")


def test_overrides_take_precedence_over_environment(monkeypatch):
    monkeypatch.setenv("WORKFLOWS_DIRECTORY", "/env/workflows")

    config = load_config(workflows_directory="/explicit")
    assert config.workflows_directory == Path("/explicit")


def test_broker_environment_overrides_file(tmp_path, monkeypatch):
    config_path = tmp_path / "hookflow.yaml"
    config_path.write_text("queue:\n  redis:\n    host: filehost\n")
    monkeypatch.setenv("REDIS_HOST", "envhost")
    monkeypatch.setenv("REDIS_PORT", "6380")
    monkeypatch.setenv("QUEUE_NAME", "env-jobs")

    config = load_config(str(config_path))
    assert config.queue.redis.host == "envhost"
    assert config.queue.redis.port == 6380
    assert config.queue.name == "env-jobs"


def test_dotenv_file_is_loaded(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("JOBS_DIRECTORY=/dotenv/jobs\n")

    config = load_config()
    assert config.jobs_directory == Path("/dotenv/jobs")


def test_validate_paths_requires_both_directories():
    with pytest.raises(ConfigurationError, match="Workflows directory missing"):
        HookflowConfig(jobs_directory="/jobs").validate_paths()
    with pytest.raises(ConfigurationError, match="Jobs directory missing"):
        HookflowConfig(workflows_directory="/workflows").validate_paths()


def test_job_namespace_only_for_dependencies():
    assert HookflowConfig(name="shared").job_namespace is None
    assert HookflowConfig(name="shared", from_dependencies=True).job_namespace == "shared"


def test_get_queue_uses_config(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
queue:
  backend: redis
  redis:
    host: confighost
    port: 6380
"""
    )
    monkeypatch.setenv("HOOKFLOW_CONFIG", str(config_path))

    queue = get_queue()
    assert isinstance(queue, RedisQueue)
    assert queue.host == "confighost"
    assert queue.port == 6380
