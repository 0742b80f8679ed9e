"""Job handler manifest and registry.

Job types are derived from file paths below the jobs root: the module
``jobs/mail/send.py`` handles the job type ``mail/send``. Jobs shipped by a
dependency package are namespaced as ``$<package>/mail/send``.

Each job module exposes a ``handle`` (or ``handler``) callable that receives
the :class:`~hookflow.contracts.Job`; it may be a coroutine function.
"""

from __future__ import annotations

import logging
import re
from importlib.util import module_from_spec, spec_from_file_location
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from .constants import JOB_HANDLER_ATTRIBUTES
from .fs import iter_python_files
from .queues import JobHandler

logger = logging.getLogger(__name__)


def job_type_for(path: Path, jobs_root: Path, namespace: Optional[str] = None) -> str:
    """Return the job type name for the module at ``path``."""
    relative = path.relative_to(jobs_root).with_suffix("")
    job_type = relative.as_posix()
    if namespace:
        job_type = f"${namespace}/{job_type}"
    return job_type


def build_job_manifest(
    jobs_root: Union[str, Path], namespace: Optional[str] = None
) -> Dict[str, Path]:
    """Map every job type found below ``jobs_root`` to its module path."""
    root = Path(jobs_root).expanduser().resolve()
    if not root.is_dir():
        raise FileNotFoundError(f"Jobs directory not found: {jobs_root}")

    return {
        job_type_for(path, root, namespace): path for path in iter_python_files(root)
    }


class JobRegistry:
    """Explicit mapping of job types to handler callables."""

    def __init__(self) -> None:
        self._handlers: Dict[str, JobHandler] = {}

    def register(self, job_type: str, handler: JobHandler) -> None:
        if job_type in self._handlers:
            logger.warning(f"Job {job_type} registered twice, keeping the latest")
        self._handlers[job_type] = handler

    def get(self, job_type: str) -> Optional[JobHandler]:
        return self._handlers.get(job_type)

    def names(self) -> List[str]:
        return sorted(self._handlers)

    def items(self) -> Iterator[tuple[str, JobHandler]]:
        return iter(sorted(self._handlers.items()))

    def __contains__(self, job_type: object) -> bool:
        return job_type in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


def _load_handler(job_type: str, path: Path) -> Optional[JobHandler]:
    module_name = "hookflow_jobs." + re.sub(r"\W", "_", job_type)
    spec = spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        return None
    module = module_from_spec(spec)
    spec.loader.exec_module(module)

    for attribute in JOB_HANDLER_ATTRIBUTES:
        handler = getattr(module, attribute, None)
        if callable(handler):
            return handler
    return None


def load_job_handlers(
    manifest: Dict[str, Path], registry: Optional[JobRegistry] = None
) -> JobRegistry:
    """Import each manifest entry once and register its handler."""
    registry = registry or JobRegistry()
    for job_type, path in manifest.items():
        try:
            handler = _load_handler(job_type, path)
        except Exception:
            logger.exception(f"Skipping job {job_type}: failed to import {path}")
            continue
        if handler is None:
            logger.warning(f"Skipping job {job_type}: no handler found in {path}")
            continue
        registry.register(job_type, handler)
        logger.info(f"Job processed : {job_type}")
    return registry
