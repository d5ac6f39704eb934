"""Result models for convergence runs.

Pydantic v2 models recording what happened to each step of a topology.
The CLI renders them as a table, or dumps them with ``model_dump_json``
for ``--json``.

Key Concepts:
    StepOutcome: CREATED, REUSED, FAILED or SKIPPED per step.
    StepReport: Outcome of one step plus the resolved id and any error.
    ConvergenceReport: Ordered step reports. ``mark_complete()`` finalises
        timestamps; ``ok`` is False when any step failed or was skipped.

Tags:
    results, models, pydantic, reporting
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from flowspine.core.errors import FlowSpineError


class StepOutcome(str, Enum):
    CREATED = "CREATED"
    REUSED = "REUSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class StepReport(BaseModel):
    """Outcome of a single resource step."""

    key: str
    kind: str
    name: str
    outcome: StepOutcome
    resource_id: str | None = None
    synthetic: bool = False
    configured: bool = False
    enabled: bool = False
    write_attempts: int = 0
    error_type: str | None = None
    error: str | None = None
    http_status: int | None = None
    body: str | None = None

    @property
    def resolved(self) -> bool:
        return self.resource_id is not None

    def record_error(self, error: FlowSpineError) -> None:
        self.error_type = type(error).__name__
        self.error = error.message
        self.http_status = error.context.http_status
        self.body = error.context.body


class ConvergenceReport(BaseModel):
    """Ordered outcomes of a convergence run."""

    topology: str
    dry_run: bool = False
    started_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    completed_at: str | None = None
    duration_seconds: float = 0.0
    steps: list[StepReport] = Field(default_factory=list)

    def add(self, step: StepReport) -> StepReport:
        self.steps.append(step)
        return step

    def mark_complete(self) -> None:
        """Finalise timestamps and duration."""
        self.completed_at = datetime.now(UTC).isoformat()
        start = datetime.fromisoformat(self.started_at)
        end = datetime.fromisoformat(self.completed_at)
        self.duration_seconds = (end - start).total_seconds()

    def step(self, key: str) -> StepReport:
        for report in self.steps:
            if report.key == key:
                return report
        raise KeyError(key)

    def counts(self) -> dict[str, int]:
        counts = {outcome.value: 0 for outcome in StepOutcome}
        for report in self.steps:
            counts[report.outcome.value] += 1
        return counts

    @property
    def failed(self) -> list[StepReport]:
        return [s for s in self.steps if s.outcome is StepOutcome.FAILED]

    @property
    def skipped(self) -> list[StepReport]:
        return [s for s in self.steps if s.outcome is StepOutcome.SKIPPED]

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped

    def outcomes(self) -> list[tuple[str, StepOutcome]]:
        """``(key, outcome)`` pairs in run order."""
        return [(s.key, s.outcome) for s in self.steps]

    def ids(self) -> dict[str, str]:
        return {s.key: s.resource_id for s in self.steps if s.resource_id is not None}

    def summary(self) -> str:
        counts = self.counts()
        mode = "dry-run" if self.dry_run else "applied"
        parts = ", ".join(f"{v} {k.lower()}" for k, v in counts.items() if v)
        return f"{self.topology} ({mode}): {parts or 'no steps'}"

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        data["ok"] = self.ok
        data["counts"] = self.counts()
        return data
