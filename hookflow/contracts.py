"""Core data contracts for hookflow workflows and jobs."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StageDefinition(BaseModel):
    """One dispatchable unit of work, optionally branching into children."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    job: str
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: Optional[int] = None
    repeat: Optional[Any] = None
    on_success: Optional[StageDefinition] = Field(default=None, alias="onSuccess")
    on_fail: Optional[StageDefinition] = Field(default=None, alias="onFail")

    @property
    def has_children(self) -> bool:
        return self.on_success is not None or self.on_fail is not None


class RequirementSet(BaseModel):
    """Data rules that trigger data must satisfy before dispatch."""

    model_config = ConfigDict(frozen=True)

    data: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("data", mode="before")
    @classmethod
    def _wrap_single_rule(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            return [value]
        return value


class WorkflowDefinition(BaseModel):
    """A workflow loaded from a definition file."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    description: str = ""
    requirements: Optional[RequirementSet] = None
    stages: List[StageDefinition] = Field(default_factory=list)
    source: Optional[Path] = None


class WorkflowSnapshot(BaseModel):
    """Identifying metadata of the originating workflow."""

    id: str
    name: str = ""
    description: str = ""

    @classmethod
    def of(cls, workflow: WorkflowDefinition) -> "WorkflowSnapshot":
        return cls(
            id=workflow.id, name=workflow.name, description=workflow.description
        )


class StageSnapshot(BaseModel):
    """Snapshot of the stage a job was dispatched for."""

    id: str
    name: str
    data: Dict[str, Any] = Field(default_factory=dict)


class JobEnvelope(BaseModel):
    """Payload submitted to the queue for one stage execution."""

    body: Any = None
    previous: Any = None
    workflow: WorkflowSnapshot
    stage: StageSnapshot


class DispatchOptions(BaseModel):
    """Queue options attached to a job.

    ``stage_id`` is the correlation key read back when the queue reports the
    job's outcome.
    """

    model_config = ConfigDict(populate_by_name=True)

    stage_id: Optional[str] = Field(default=None, alias="stageId")
    priority: Optional[int] = None
    repeat: Optional[Any] = None


class Job(BaseModel):
    """A job as held by a queue backend."""

    id: str
    name: str
    data: JobEnvelope
    options: DispatchOptions = Field(default_factory=DispatchOptions)

    def to_json(self) -> str:
        """Serialize job to JSON."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, data: str | bytes) -> "Job":
        """Deserialize job from JSON."""
        return cls.model_validate_json(data)
