"""Continuation registry correlating job outcomes with child stages.

Every dispatched stage that has an ``onSuccess`` or ``onFail`` child is
tracked as a :class:`StageRun`. The run starts ``PENDING`` and moves to
``COMPLETED`` or ``FAILED`` when the queue reports the job's outcome. It stays
in that state while the matching child is being dispatched and becomes
``RESOLVED`` once :meth:`ContinuationRegistry.settle` is called for it::

    PENDING -> COMPLETED -> RESOLVED
    PENDING -> FAILED    -> RESOLVED

An outcome with no child registered for it resolves the run immediately.

Continuations are kept in two independent registries, one per outcome, keyed
by the parent's correlation id. When several runs share a correlation id they
are matched oldest first.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import deque
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

from pydantic import BaseModel, Field

from .contracts import StageDefinition, WorkflowDefinition

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"

    @property
    def opposite(self) -> "Outcome":
        return Outcome.FAILURE if self is Outcome.SUCCESS else Outcome.SUCCESS


class StageRunState(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    RESOLVED = "resolved"


ALLOWED_TRANSITIONS: dict[StageRunState, set[StageRunState]] = {
    StageRunState.PENDING: {StageRunState.COMPLETED, StageRunState.FAILED},
    StageRunState.COMPLETED: {StageRunState.RESOLVED},
    StageRunState.FAILED: {StageRunState.RESOLVED},
    StageRunState.RESOLVED: set(),
}


class IllegalTransitionError(ValueError):
    pass


class StageRun(BaseModel):
    """State of one in-flight stage dispatch."""

    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    correlation_id: str
    stage_id: str
    state: StageRunState = StageRunState.PENDING
    value: Any = None

    def transition(self, to_state: StageRunState, value: Any = None) -> None:
        if to_state not in ALLOWED_TRANSITIONS[self.state]:
            raise IllegalTransitionError(
                f"Illegal transition for stage run {self.run_id}: "
                f"{self.state.value} -> {to_state.value}"
            )
        self.state = to_state
        if to_state in (StageRunState.COMPLETED, StageRunState.FAILED):
            self.value = value


class ContinuationContext(BaseModel):
    """Trigger data and workflow captured when a continuation is registered."""

    trigger_data: Any = None
    workflow: WorkflowDefinition


class PendingContinuation(BaseModel):
    """A child stage waiting for its parent's outcome."""

    parent_stage_id: str
    outcome: Outcome
    child_stage: StageDefinition
    context: ContinuationContext
    run_id: str


class ContinuationRegistry:
    """Tracks pending continuations and resolves them on job outcomes.

    All reads and writes happen under a single lock, so a duplicate outcome
    notification can never match the same run twice.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._continuations: Dict[Outcome, Dict[str, Deque[PendingContinuation]]] = {
            Outcome.SUCCESS: {},
            Outcome.FAILURE: {},
        }
        self._runs: Dict[str, Deque[StageRun]] = {}

    async def register(
        self, run: StageRun, continuations: List[PendingContinuation]
    ) -> None:
        """Track ``run`` and the continuations waiting on it."""
        async with self._lock:
            self._runs.setdefault(run.correlation_id, deque()).append(run)
            for entry in continuations:
                registry = self._continuations[entry.outcome]
                registry.setdefault(entry.parent_stage_id, deque()).append(entry)

    async def take(
        self, outcome: Outcome, correlation_id: str, value: Any = None
    ) -> Optional[PendingContinuation]:
        """Record ``outcome`` on the oldest pending run for ``correlation_id``.

        Returns the continuation registered for ``outcome``, already removed
        from the registry, or ``None`` when nothing is waiting on it. A
        returned continuation leaves its run ``COMPLETED`` or ``FAILED`` until
        :meth:`settle` is called with it.
        """
        async with self._lock:
            run = self._oldest_pending_run(correlation_id)
            if run is None:
                logger.debug(
                    f"No pending continuation for stage {correlation_id} ({outcome.value})"
                )
                return None

            run.transition(
                StageRunState.COMPLETED
                if outcome is Outcome.SUCCESS
                else StageRunState.FAILED,
                value,
            )
            entry = self._pop_entry(outcome, correlation_id, run.run_id)
            # the other branch of this run can no longer fire
            self._pop_entry(outcome.opposite, correlation_id, run.run_id)
            if entry is None:
                run.transition(StageRunState.RESOLVED)
                self._forget_run(run)
            return entry

    async def settle(self, entry: PendingContinuation) -> None:
        """Mark the run ``entry`` was taken from as resolved and forget it."""
        async with self._lock:
            run = self._find_run(entry.parent_stage_id, entry.run_id)
            if run is None:
                return
            run.transition(StageRunState.RESOLVED)
            self._forget_run(run)

    async def discard(self, run: StageRun) -> None:
        """Drop ``run`` and every continuation still waiting on it."""
        async with self._lock:
            for outcome in Outcome:
                self._pop_entry(outcome, run.correlation_id, run.run_id)
            if self._find_run(run.correlation_id, run.run_id) is not None:
                self._forget_run(run)

    def _find_run(self, correlation_id: str, run_id: str) -> Optional[StageRun]:
        runs = self._runs.get(correlation_id)
        if not runs:
            return None
        return next((r for r in runs if r.run_id == run_id), None)

    def _oldest_pending_run(self, correlation_id: str) -> Optional[StageRun]:
        runs = self._runs.get(correlation_id)
        if not runs:
            return None
        return next((r for r in runs if r.state is StageRunState.PENDING), None)

    def _pop_entry(
        self, outcome: Outcome, correlation_id: str, run_id: str
    ) -> Optional[PendingContinuation]:
        registry = self._continuations[outcome]
        entries = registry.get(correlation_id)
        if not entries:
            return None
        match = next((e for e in entries if e.run_id == run_id), None)
        if match is not None:
            entries.remove(match)
            if not entries:
                del registry[correlation_id]
        return match

    def _forget_run(self, run: StageRun) -> None:
        runs = self._runs.get(run.correlation_id)
        if runs is None:
            return
        runs.remove(run)
        if not runs:
            del self._runs[run.correlation_id]

    def pending_count(self, outcome: Optional[Outcome] = None) -> int:
        """Number of continuations still waiting for an outcome."""
        outcomes = [outcome] if outcome is not None else list(Outcome)
        return sum(
            len(entries)
            for key in outcomes
            for entries in self._continuations[key].values()
        )

    def pending_runs(self) -> int:
        """Number of stage runs still awaiting an outcome."""
        return sum(
            1
            for runs in self._runs.values()
            for run in runs
            if run.state is StageRunState.PENDING
        )

    def runs(self) -> List[StageRun]:
        """Tracked runs, oldest first per correlation id."""
        return [run for runs in self._runs.values() for run in runs]

    def snapshot(self) -> Dict[str, Dict[str, List[str]]]:
        """Return ``{outcome: {correlation_id: [child stage ids]}}``."""
        return {
            outcome.value: {
                correlation_id: [entry.child_stage.id for entry in entries]
                for correlation_id, entries in registry.items()
            }
            for outcome, registry in self._continuations.items()
        }
