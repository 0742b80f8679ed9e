"""Discovery of workflow definition files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

import anyio
import yaml

from .constants import WORKFLOW_FILENAMES
from .contracts import WorkflowDefinition
from .stages import WorkflowDefinitionError, build_workflow

logger = logging.getLogger(__name__)


async def _workflow_file(directory: anyio.Path) -> Optional[anyio.Path]:
    for filename in WORKFLOW_FILENAMES:
        candidate = directory / filename
        if await candidate.is_file():
            return candidate
    return None


async def load_workflow_file(path: Union[str, Path]) -> Optional[WorkflowDefinition]:
    """Parse one workflow file; malformed files are logged and skipped."""
    file_path = anyio.Path(path)
    try:
        document = yaml.safe_load(await file_path.read_text(encoding="utf-8"))
        return build_workflow(document, source=Path(file_path))
    except (OSError, yaml.YAMLError, WorkflowDefinitionError) as exc:
        logger.warning(f"Skipping workflow file {file_path}: {exc}")
        return None


async def discover_workflows(root: Union[str, Path]) -> List[WorkflowDefinition]:
    """Recursively collect workflow definitions below ``root``.

    Each directory holding a ``workflow.yml`` contributes one definition;
    directories without one are searched further.
    """
    root_path = anyio.Path(root)
    if not await root_path.is_dir():
        logger.error(f"Workflows directory not found: {root}")
        return []

    try:
        entries = sorted(
            [entry async for entry in root_path.iterdir()], key=lambda p: p.name
        )
    except OSError as exc:
        logger.warning(f"Skipping workflow directory {root_path}: {exc}")
        return []

    workflows: List[WorkflowDefinition] = []
    for entry in entries:
        try:
            if not await entry.is_dir():
                continue
            workflow_file = await _workflow_file(entry)
            if workflow_file is None:
                workflows.extend(await discover_workflows(entry))
                continue
        except OSError as exc:
            logger.warning(f"Skipping workflow directory {entry}: {exc}")
            continue
        definition = await load_workflow_file(workflow_file)
        if definition is not None:
            workflows.append(definition)
    return workflows
