"""Pydantic models for linked plans and their execution tracking.

Plans are markdown documents under ``.context/plans/``. Linking a plan
records a PlanRef in ``workflow/plans.json``; execution progress is kept
per plan in ``workflow/plan-tracking/<slug>.json``.
"""

from typing import Any

from pydantic import BaseModel, Field

from prevc.config import DecisionStatus, PhaseCode, StatusType
from prevc.workflow.status_models import PlanRef, utc_now


class PlanStep(BaseModel):
    """A numbered step under a plan phase heading."""

    order: int
    description: str
    status: StatusType = StatusType.PENDING


class PlanPhase(BaseModel):
    """A plan phase mapped onto a PREVC phase."""

    id: str
    name: str
    prevc: PhaseCode
    steps: list[PlanStep] = Field(default_factory=list)
    status: StatusType = StatusType.PENDING


class PlanDecision(BaseModel):
    """Append-only decision record."""

    id: str
    title: str
    description: str
    phase: PhaseCode | None = None
    alternatives: list[str] = Field(default_factory=list)
    decided_by: str | None = None
    decided_at: str = Field(default_factory=utc_now)
    status: DecisionStatus = DecisionStatus.ACCEPTED


class StepExecution(BaseModel):
    step_index: int
    description: str
    status: StatusType = StatusType.PENDING
    started_at: str | None = None
    completed_at: str | None = None
    output: str | None = None
    notes: str | None = None


class PlanPhaseTracking(BaseModel):
    phase_id: str
    status: StatusType = StatusType.PENDING
    started_at: str | None = None
    completed_at: str | None = None
    steps: list[StepExecution] = Field(default_factory=list)

    def find_step(self, step_index: int) -> StepExecution | None:
        for step in self.steps:
            if step.step_index == step_index:
                return step
        return None


class PlanExecutionTracking(BaseModel):
    """Contents of ``plan-tracking/<slug>.json``."""

    plan_slug: str
    progress: int = 0
    phases: dict[str, PlanPhaseTracking] = Field(default_factory=dict)
    decisions: list[PlanDecision] = Field(default_factory=list)
    last_updated: str = Field(default_factory=utc_now)


class WorkflowPlans(BaseModel):
    """Contents of ``workflow/plans.json``."""

    active: list[PlanRef] = Field(default_factory=list)
    completed: list[PlanRef] = Field(default_factory=list)
    primary: str | None = None

    def find(self, slug: str) -> PlanRef | None:
        for ref in [*self.active, *self.completed]:
            if ref.slug == slug:
                return ref
        return None


class LinkedPlan(BaseModel):
    """A linked plan parsed from markdown and merged with its tracking."""

    ref: PlanRef
    phases: list[PlanPhase] = Field(default_factory=list)
    decisions: list[PlanDecision] = Field(default_factory=list)
    agents: list[str] = Field(default_factory=list)
    docs: list[str] = Field(default_factory=list)
    progress: int = 0
    current_phase: str | None = None

    def phases_for(self, phase: PhaseCode) -> list[PlanPhase]:
        return [p for p in self.phases if p.prevc == phase]

    def find_phase(self, phase_id: str) -> PlanPhase | None:
        for phase in self.phases:
            if phase.id == phase_id:
                return phase
        return None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
