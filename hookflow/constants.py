"""Shared constants for hookflow."""

DEFAULT_QUEUE_NAME = "global-jobs"
DEFAULT_REDIS_HOST = "127.0.0.1"
DEFAULT_REDIS_PORT = 6379

WORKFLOW_FILENAMES = ("workflow.yml", "workflow.yaml")
JOB_HANDLER_ATTRIBUTES = ("handle", "handler")
REDIS_KEY_PREFIX = "hookflow"
