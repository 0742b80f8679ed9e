"""Build stage graphs from parsed workflow documents."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from .contracts import RequirementSet, StageDefinition, WorkflowDefinition

_CHILD_KEYS = (("onSuccess", "on_success"), ("onFail", "on_fail"))


class WorkflowDefinitionError(ValueError):
    """Raised when a workflow document cannot be turned into a definition."""


def _split_stage(raw: Any) -> Tuple[str, Dict[str, Any]]:
    """Return ``(name, config)`` for either supported stage layout.

    Stages are usually written as a single-key mapping ``{name: {...}}``; a
    flat mapping carrying its own ``name`` key is accepted as well.
    """
    if not isinstance(raw, Mapping):
        raise WorkflowDefinitionError(f"Stage must be a mapping, got {type(raw).__name__}")

    if "name" in raw and "job" in raw:
        config = dict(raw)
        return str(config.pop("name")), config

    if len(raw) == 1:
        name, config = next(iter(raw.items()))
        if isinstance(config, Mapping):
            return str(name), dict(config)

    raise WorkflowDefinitionError(f"Unrecognised stage layout: {dict(raw)!r}")


def build_stage(raw: Any, path: str) -> StageDefinition:
    """Build one stage and its nested children, bottom-up."""
    name, config = _split_stage(raw)
    stage_path = f"{path}:{name}"

    if not config.get("job"):
        raise WorkflowDefinitionError(f"Stage {stage_path} has no job")

    children: Dict[str, Optional[StageDefinition]] = {}
    for yaml_key, field in _CHILD_KEYS:
        child = config.pop(yaml_key, None)
        if child is None:
            child = config.pop(field, None)
        children[field] = (
            build_stage(child, f"{stage_path}.{yaml_key}") if child is not None else None
        )

    try:
        return StageDefinition(
            id=str(config.pop("id", stage_path)),
            name=name,
            job=str(config.pop("job")),
            data=config.pop("data", None) or {},
            priority=config.pop("priority", None),
            repeat=config.pop("repeat", None),
            **children,
        )
    except ValidationError as exc:
        raise WorkflowDefinitionError(f"Invalid stage {stage_path}: {exc}") from exc


def build_stages(raw_stages: Any, workflow_id: str) -> List[StageDefinition]:
    """Materialise the top-level stages of a workflow."""
    if raw_stages is None:
        return []
    if not isinstance(raw_stages, list):
        raise WorkflowDefinitionError("Workflow stages must be a list")
    return [build_stage(raw, workflow_id) for raw in raw_stages]


def build_workflow(document: Any, source: Optional[Path] = None) -> WorkflowDefinition:
    """Build a ``WorkflowDefinition`` from a parsed YAML document."""
    if not isinstance(document, Mapping):
        raise WorkflowDefinitionError("Workflow document must be a mapping")
    if document.get("id") is None:
        raise WorkflowDefinitionError("Workflow document has no id")

    workflow_id = str(document["id"])
    requirements = document.get("requirements")
    try:
        return WorkflowDefinition(
            id=workflow_id,
            name=str(document.get("name") or ""),
            description=str(document.get("description") or ""),
            requirements=RequirementSet(**requirements) if requirements else None,
            stages=build_stages(document.get("stages"), workflow_id),
            source=source,
        )
    except (ValidationError, TypeError) as exc:
        raise WorkflowDefinitionError(f"Invalid workflow {workflow_id}: {exc}") from exc


def iter_stages(
    stages: List[StageDefinition], depth: int = 0
) -> Iterator[Tuple[int, StageDefinition]]:
    """Yield ``(depth, stage)`` pairs walking the stage tree depth first."""
    for stage in stages:
        yield depth, stage
        children = [child for child in (stage.on_success, stage.on_fail) if child]
        yield from iter_stages(children, depth + 1)
