"""Gateway operations and their parameter models.

Every Operation has exactly one params model in PARAMS_MODELS. Params are
accepted in snake_case or camelCase (``archive_previous`` or
``archivePrevious``); unknown keys are rejected.
"""

from enum import Enum
from types import MappingProxyType
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

from prevc.config import PLAN_SLUG_PATTERN, PhaseCode, RoleId, StatusType

PlanSlug = Annotated[str, StringConstraints(pattern=PLAN_SLUG_PATTERN)]


class Operation(str, Enum):
    """Closed set of operations the gateway dispatches."""

    INIT = "init"
    STATUS = "status"
    ADVANCE = "advance"
    HANDOFF = "handoff"
    COLLABORATE = "collaborate"
    CONTRIBUTE = "contribute"
    END_COLLABORATION = "end_collaboration"
    GET_GATES = "get_gates"
    APPROVE_PLAN = "approve_plan"
    SET_AUTONOMOUS = "set_autonomous"
    RECOMMENDED_ACTIONS = "recommended_actions"
    LINK_PLAN = "link_plan"
    GET_LINKED_PLANS = "get_linked_plans"
    GET_PLAN_DETAILS = "get_plan_details"
    GET_PLANS_FOR_PHASE = "get_plans_for_phase"
    UPDATE_PLAN_PHASE = "update_plan_phase"
    UPDATE_PLAN_STEP = "update_plan_step"
    RECORD_DECISION = "record_decision"
    GET_PLAN_STATUS = "get_plan_status"
    SYNC_PLAN_MARKDOWN = "sync_plan_markdown"

    @classmethod
    def values(cls) -> list[str]:
        """Return all operation names as strings."""
        return [op.value for op in cls]


class OperationParams(BaseModel):
    """Base for all params models."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class NoParams(OperationParams):
    """Operations that take no arguments."""


# =============================================================================
# Workflow
# =============================================================================


class InitParams(OperationParams):
    name: str = Field(min_length=1)
    description: str | None = None
    scale: str | int | None = None
    files: list[str] | None = None
    complexity: Literal["low", "medium", "high"] | None = None
    compliance: bool = False
    autonomous: bool | None = None
    require_plan: bool | None = None
    require_approval: bool | None = None
    archive_previous: bool | None = None


class AdvanceParams(OperationParams):
    outputs: list[str] | None = None
    force: bool = False


class HandoffParams(OperationParams):
    """Identifiers are validated by the service so empty names get a clear error."""

    source: str = Field(default="", alias="from")
    target: str = Field(default="", alias="to")
    artifacts: list[str] = Field(default_factory=list)


class CollaborateParams(OperationParams):
    topic: str = Field(min_length=1)
    participants: list[RoleId] | None = None


class ContributeParams(OperationParams):
    session_id: str
    role: RoleId
    message: str = Field(min_length=1)


class EndCollaborationParams(OperationParams):
    session_id: str


class ApprovePlanParams(OperationParams):
    approver: str = "reviewer"
    notes: str | None = None
    plan_slug: PlanSlug | None = None


class SetAutonomousParams(OperationParams):
    enabled: bool
    reason: str | None = None


# =============================================================================
# Plans
# =============================================================================


class PlanSlugParams(OperationParams):
    plan_slug: PlanSlug


class PlansForPhaseParams(OperationParams):
    phase: PhaseCode | None = None  # Defaults to the current phase


class UpdatePlanPhaseParams(PlanSlugParams):
    phase_id: str
    status: StatusType


class UpdatePlanStepParams(PlanSlugParams):
    phase_id: str
    step_index: int
    status: StatusType
    output: str | None = None
    notes: str | None = None


class RecordDecisionParams(PlanSlugParams):
    title: str = Field(min_length=1)
    description: str
    phase: PhaseCode | None = None
    alternatives: list[str] | None = None
    decided_by: str | None = None


PARAMS_MODELS: MappingProxyType[Operation, type[OperationParams]] = MappingProxyType(
    {
        Operation.INIT: InitParams,
        Operation.STATUS: NoParams,
        Operation.ADVANCE: AdvanceParams,
        Operation.HANDOFF: HandoffParams,
        Operation.COLLABORATE: CollaborateParams,
        Operation.CONTRIBUTE: ContributeParams,
        Operation.END_COLLABORATION: EndCollaborationParams,
        Operation.GET_GATES: NoParams,
        Operation.APPROVE_PLAN: ApprovePlanParams,
        Operation.SET_AUTONOMOUS: SetAutonomousParams,
        Operation.RECOMMENDED_ACTIONS: NoParams,
        Operation.LINK_PLAN: PlanSlugParams,
        Operation.GET_LINKED_PLANS: NoParams,
        Operation.GET_PLAN_DETAILS: PlanSlugParams,
        Operation.GET_PLANS_FOR_PHASE: PlansForPhaseParams,
        Operation.UPDATE_PLAN_PHASE: UpdatePlanPhaseParams,
        Operation.UPDATE_PLAN_STEP: UpdatePlanStepParams,
        Operation.RECORD_DECISION: RecordDecisionParams,
        Operation.GET_PLAN_STATUS: PlanSlugParams,
        Operation.SYNC_PLAN_MARKDOWN: PlanSlugParams,
    }
)
