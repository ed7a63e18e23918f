"""Pydantic models for the persisted workflow status document.

All workflow state lives in ``.context/workflow/status.yaml``. These models
define its schema and the in-memory mutations that every operation builds
on; StatusStore handles reading and writing.

Example status.yaml:
    project:
      name: add-login
      scale: SMALL
      current_phase: P
      created_at: '2025-01-15T10:00:00Z'
    phases:
      P:
        status: in_progress
        started_at: '2025-01-15T10:00:00Z'
      R:
        status: skipped
        reason: Not required for scale SMALL
      ...
    settings:
      autonomous_mode: false
      require_plan: true
      require_approval: false
    approval:
      plan_created: false
      plan_approved: false
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from prevc.config import (
    PHASE_ORDER,
    ActivityStatus,
    ApprovalStatus,
    ExecutionAction,
    OutputState,
    PhaseCode,
    PlanStatus,
    ProjectScale,
    RoleId,
    StatusType,
)


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string with a ``Z`` suffix."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class OutputStatus(BaseModel):
    """An output artifact recorded against a phase."""

    path: str
    status: OutputState = OutputState.UNFILLED


class PhaseState(BaseModel):
    """State of one PREVC phase."""

    status: StatusType = StatusType.PENDING
    started_at: str | None = None
    completed_at: str | None = None
    role: RoleId | None = None
    current_task: str | None = None
    reason: str | None = None  # Why the phase was skipped
    outputs: list[OutputStatus] = Field(default_factory=list)


class RoleState(BaseModel):
    """State of a PREVC role.

    Roles are never closed for good: a later handoff can reactivate a
    completed role.
    """

    status: ActivityStatus = ActivityStatus.IDLE
    phase: PhaseCode | None = None
    current_task: str | None = None
    outputs: list[str] = Field(default_factory=list)
    last_active: str | None = None
    last_handoff_at: str | None = None


class AgentState(RoleState):
    """State of a specialist agent that took part in a handoff."""

    started_at: str | None = None
    completed_at: str | None = None


class WorkflowSettings(BaseModel):
    """Gate settings for a workflow."""

    autonomous_mode: bool = False
    require_plan: bool = True
    require_approval: bool = True


class ApprovalRecord(BaseModel):
    """Plan creation/approval tracking consulted by the gates."""

    plan_created: bool = False
    plan_approved: bool = False
    approved_by: str | None = None
    approved_at: str | None = None
    approval_notes: str | None = None

    @model_validator(mode="after")
    def _approved_implies_created(self) -> "ApprovalRecord":
        if self.plan_approved and not self.plan_created:
            raise ValueError("plan_approved requires plan_created")
        return self


class PlanPhaseRef(BaseModel):
    """A plan phase and the PREVC phase it maps to."""

    id: str
    name: str
    prevc: PhaseCode


class PlanRef(BaseModel):
    """Reference from the workflow to a linked plan document."""

    slug: str
    path: str
    title: str
    summary: str | None = None
    linked_at: str = Field(default_factory=utc_now)
    status: PlanStatus = PlanStatus.ACTIVE
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    approved_by: str | None = None
    approved_at: str | None = None
    phases: list[PlanPhaseRef] = Field(default_factory=list)


class HandoffRecord(BaseModel):
    """Audit record of a transfer of responsibility."""

    id: str
    source: str
    target: str
    artifacts: list[str] = Field(default_factory=list)
    phase: PhaseCode
    timestamp: str = Field(default_factory=utc_now)


class ExecutionEntry(BaseModel):
    """One breadcrumb in the execution history."""

    timestamp: str = Field(default_factory=utc_now)
    phase: PhaseCode
    action: ExecutionAction
    plan: str | None = None
    approved_by: str | None = None
    description: str | None = None
    # Step-level fields (plan step tracking)
    plan_phase: str | None = None
    step_index: int | None = None
    step_description: str | None = None
    output: str | None = None
    notes: str | None = None


class ExecutionHistory(BaseModel):
    """Execution history plus a one-line resume hint."""

    history: list[ExecutionEntry] = Field(default_factory=list)
    last_activity: str | None = None
    resume_context: str = ""


class ProjectMetadata(BaseModel):
    """Identity and position of the workflow."""

    name: str
    description: str | None = None
    scale: ProjectScale
    current_phase: PhaseCode
    created_at: str = Field(default_factory=utc_now)
    plan: str | None = None  # Primary linked plan slug

    @field_validator("scale", mode="before")
    @classmethod
    def _parse_scale(cls, value: Any) -> Any:
        if isinstance(value, str) and value.upper() in ProjectScale.names():
            return ProjectScale[value.upper()]
        return value

    @field_serializer("scale")
    def _serialize_scale(self, scale: ProjectScale) -> str:
        return scale.name


# =============================================================================
# Resume context
# =============================================================================

_RESUME_TEMPLATES: dict[ExecutionAction, str] = {
    ExecutionAction.STARTED: "Phase {phase} started",
    ExecutionAction.COMPLETED: "Phase {phase} completed",
    ExecutionAction.PLAN_LINKED: "Plan linked during {phase}",
    ExecutionAction.PLAN_APPROVED: "Plan approved during {phase}",
    ExecutionAction.PHASE_SKIPPED: "Phase {phase} skipped",
    ExecutionAction.SETTINGS_CHANGED: "Settings changed during {phase}",
    ExecutionAction.HANDOFF: "Handoff recorded during {phase}",
    ExecutionAction.STEP_STARTED: "Working on {step} in {phase}",
    ExecutionAction.STEP_COMPLETED: "Completed {step} in {phase}",
    ExecutionAction.STEP_SKIPPED: "Skipped {step} in {phase}",
}


def resume_context(phase: PhaseCode, action: ExecutionAction, entry: ExecutionEntry | None = None) -> str:
    """Build the one-line hint shown when a workflow is resumed."""
    from prevc.workflow.phases import phase_name

    step = "step"
    if entry is not None and entry.step_index is not None:
        step = f"step {entry.step_index}"
        if entry.plan_phase:
            step = f"{entry.plan_phase} step {entry.step_index}"
        if entry.step_description:
            step = f"{step} ({entry.step_description})"
    return _RESUME_TEMPLATES[action].format(phase=phase_name(phase), step=step)


# =============================================================================
# Root aggregate
# =============================================================================


class WorkflowStatus(BaseModel):
    """Root aggregate: the whole workflow state for one repository."""

    project: ProjectMetadata
    phases: dict[PhaseCode, PhaseState]
    roles: dict[RoleId, RoleState] = Field(default_factory=dict)
    agents: dict[str, AgentState] = Field(default_factory=dict)
    settings: WorkflowSettings = Field(default_factory=WorkflowSettings)
    approval: ApprovalRecord = Field(default_factory=ApprovalRecord)
    linked_plans: list[PlanRef] = Field(default_factory=list)
    handoffs: list[HandoffRecord] = Field(default_factory=list)
    execution: ExecutionHistory = Field(default_factory=ExecutionHistory)

    @model_validator(mode="after")
    def _check_phases(self) -> "WorkflowStatus":
        missing = [code.value for code in PHASE_ORDER if code not in self.phases]
        if missing:
            raise ValueError(f"status document is missing phases: {', '.join(missing)}")
        in_progress = [
            code.value for code, state in self.phases.items() if state.status == StatusType.IN_PROGRESS
        ]
        if len(in_progress) > 1:
            raise ValueError(f"more than one phase in progress: {', '.join(in_progress)}")
        return self

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def current_phase(self) -> PhaseCode:
        return self.project.current_phase

    def active_phases(self) -> list[PhaseCode]:
        """Phases on this workflow's route (not skipped), in order."""
        return [code for code in PHASE_ORDER if self.phases[code].status != StatusType.SKIPPED]

    def next_phase(self) -> PhaseCode | None:
        """Next non-skipped phase after the current one, or None at the end."""
        index = PHASE_ORDER.index(self.project.current_phase)
        for code in PHASE_ORDER[index + 1 :]:
            if self.phases[code].status != StatusType.SKIPPED:
                return code
        return None

    def is_complete(self) -> bool:
        """True when every phase is completed or skipped."""
        return all(
            state.status in (StatusType.COMPLETED, StatusType.SKIPPED) for state in self.phases.values()
        )

    def has_linked_plan(self) -> bool:
        return bool(self.approval.plan_created or self.project.plan or self.linked_plans)

    def active_role(self) -> RoleId | None:
        for role, state in self.roles.items():
            if state.status == ActivityStatus.ACTIVE:
                return role
        return None

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def record(self, action: ExecutionAction, phase: PhaseCode | None = None, **fields: Any) -> ExecutionEntry:
        """Append a history entry and refresh the resume context."""
        entry = ExecutionEntry(phase=phase or self.project.current_phase, action=action, **fields)
        self.execution.history.append(entry)
        self.execution.last_activity = entry.timestamp
        self.execution.resume_context = resume_context(entry.phase, action, entry)
        return entry

    def complete_phase(self, phase: PhaseCode, outputs: list[str] | None = None) -> None:
        """Mark a phase completed, recording outputs as filled."""
        state = self.phases[phase]
        state.status = StatusType.COMPLETED
        state.completed_at = utc_now()
        if outputs:
            state.outputs = [OutputStatus(path=path, status=OutputState.FILLED) for path in outputs]
        self.record(ExecutionAction.COMPLETED, phase)

    def transition_to(self, phase: PhaseCode) -> None:
        """Move the current-phase pointer and start the phase."""
        self.project.current_phase = phase
        state = self.phases[phase]
        state.status = StatusType.IN_PROGRESS
        state.started_at = utc_now()
        self.record(ExecutionAction.STARTED, phase)

    def to_document(self) -> dict[str, Any]:
        """Plain-data form written to status.yaml."""
        return self.model_dump(mode="json", exclude_none=True)
