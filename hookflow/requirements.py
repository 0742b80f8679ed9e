"""Requirement evaluation for workflow triggers.

A workflow may declare data rules which the trigger payload has to satisfy
before any of its stages are dispatched::

    requirements:
      data:
        - user.role: admin
        - env: [prod, staging]

Each rule maps a dotted key path to either a scalar (exact match) or a list
(membership). Rules with any other expected value are skipped with a warning
and count as satisfied.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from pydantic import BaseModel

from .contracts import WorkflowDefinition

logger = logging.getLogger(__name__)

SCALAR_TYPES = (str, int, float, bool)


class RequirementError(Exception):
    """Raised when trigger data does not satisfy a workflow's requirements."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class RequirementResult(BaseModel):
    """Outcome of a requirement check."""

    ok: bool
    reason: Optional[str] = None

    @classmethod
    def passed(cls) -> "RequirementResult":
        return cls(ok=True)

    @classmethod
    def failed(cls, reason: str) -> "RequirementResult":
        return cls(ok=False, reason=reason)


def resolve_key_path(key: str, data: Any) -> Any:
    """Descend into ``data`` following the dotted ``key``.

    Segments that are absent are skipped and the descent continues from the
    value reached so far, so the result may be a partially resolved object
    rather than the leaf.
    """
    current = data
    for segment in key.split("."):
        if isinstance(current, Mapping):
            if segment in current:
                current = current[segment]
        elif (
            isinstance(current, Sequence)
            and not isinstance(current, str)
            and segment.isdigit()
            and int(segment) < len(current)
        ):
            current = current[int(segment)]
    return current


def _strict_equals(left: Any, right: Any) -> bool:
    # bool is an int subclass; True must not match 1
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    return left == right


def _render(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (list, tuple)):
        return ",".join(_render(item) for item in value)
    if isinstance(value, Mapping):
        return json.dumps(value, default=str)
    return str(value)


def _failure(workflow: WorkflowDefinition, expected: Any, actual: Any) -> str:
    return (
        f"[{workflow.name}] Requirements not completed : "
        f"Require {_render(expected)} ; Give {_render(actual)}"
    )


def _check_rule(
    workflow: WorkflowDefinition, key: str, expected: Any, data: Any
) -> Optional[str]:
    """Return a failure reason for one rule or ``None`` when it passes."""
    actual = resolve_key_path(key, data)

    if isinstance(expected, SCALAR_TYPES):
        if not _strict_equals(actual, expected):
            return _failure(workflow, expected, actual)
    elif isinstance(expected, list):
        if not any(_strict_equals(actual, option) for option in expected):
            return _failure(workflow, expected, actual)
    else:
        logger.warning(f"Type not recognized : {type(expected).__name__}")
    return None


def evaluate(workflow: WorkflowDefinition, data: Any) -> RequirementResult:
    """Evaluate ``workflow``'s requirements against trigger ``data``."""
    requirements = workflow.requirements
    if requirements is None or not requirements.data:
        return RequirementResult.passed()

    if data is None:
        return RequirementResult.failed(
            f"[{workflow.name}] Requirements not completed : no data given"
        )

    for rule in requirements.data:
        for key, expected in rule.items():
            reason = _check_rule(workflow, key, expected, data)
            if reason is not None:
                return RequirementResult.failed(reason)
    return RequirementResult.passed()


def check_requirements(workflow: WorkflowDefinition, data: Any) -> None:
    """Raise ``RequirementError`` if ``data`` does not satisfy ``workflow``."""
    result = evaluate(workflow, data)
    if not result.ok:
        raise RequirementError(result.reason or "Requirements not completed")
