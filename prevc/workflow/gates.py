"""Phase transition gates.

Two gates guard the PREVC route:

- ``plan_required``: leaving Planning needs a linked plan.
- ``approval_required``: entering Execution from Planning or Review needs
  an approved plan.

Autonomous mode disables both, and ``force`` bypasses them for a single
advance. Gates only ever apply to the transition from the current phase to
the next phase on the workflow's route.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from prevc.config import GateType, PhaseCode, ProjectScale
from prevc.workflow.errors import WorkflowGateError
from prevc.workflow.phases import phase_name
from prevc.workflow.status_models import WorkflowSettings, WorkflowStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Default Settings
# =============================================================================

DEFAULT_SETTINGS: MappingProxyType[ProjectScale, WorkflowSettings] = MappingProxyType(
    {
        ProjectScale.QUICK: WorkflowSettings(
            autonomous_mode=True, require_plan=False, require_approval=False
        ),
        ProjectScale.SMALL: WorkflowSettings(
            autonomous_mode=False, require_plan=True, require_approval=False
        ),
        ProjectScale.MEDIUM: WorkflowSettings(
            autonomous_mode=False, require_plan=True, require_approval=True
        ),
        ProjectScale.LARGE: WorkflowSettings(
            autonomous_mode=False, require_plan=True, require_approval=True
        ),
        ProjectScale.ENTERPRISE: WorkflowSettings(
            autonomous_mode=False, require_plan=True, require_approval=True
        ),
    }
)


def default_settings(
    scale: ProjectScale,
    autonomous: bool | None = None,
    require_plan: bool | None = None,
    require_approval: bool | None = None,
) -> WorkflowSettings:
    """Settings for a new workflow, with explicit flags overriding scale defaults.

    Args:
        scale: Workflow scale
        autonomous: Override for autonomous_mode
        require_plan: Override for require_plan
        require_approval: Override for require_approval

    Returns:
        A fresh WorkflowSettings instance
    """
    settings = DEFAULT_SETTINGS[scale].model_copy()
    if autonomous is not None:
        settings.autonomous_mode = autonomous
    if require_plan is not None:
        settings.require_plan = require_plan
    if require_approval is not None:
        settings.require_approval = require_approval
    return settings


# =============================================================================
# Gate Results
# =============================================================================


@dataclass
class GateStatus:
    """Outcome of one gate for a transition."""

    passed: bool
    required: bool

    def to_dict(self) -> dict[str, bool]:
        return {"passed": self.passed, "required": self.required}


@dataclass
class GateCheckResult:
    """Full gate evaluation for a transition."""

    can_advance: bool
    gates: dict[GateType, GateStatus] = field(default_factory=dict)
    transition: str | None = None
    blocking_gate: GateType | None = None
    blocking_reason: str | None = None
    hint: str | None = None
    from_phase: PhaseCode | None = None
    to_phase: PhaseCode | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "canAdvance": self.can_advance,
            "gates": {gate.value: status.to_dict() for gate, status in self.gates.items()},
            "transition": self.transition,
            "blockingGate": self.blocking_gate.value if self.blocking_gate else None,
            "blockingReason": self.blocking_reason,
            "hint": self.hint,
        }

    def to_error(self) -> WorkflowGateError:
        """Convert a blocked result into the matching exception."""
        if self.can_advance or self.blocking_gate is None:
            raise ValueError("Cannot build a gate error from an open transition")
        return WorkflowGateError(
            message=self.blocking_reason or "",
            gate=self.blocking_gate,
            from_phase=self.from_phase,
            to_phase=self.to_phase,
            hint=self.hint or "",
        )


def transition_label(from_phase: PhaseCode, to_phase: PhaseCode) -> str:
    """Transition label, e.g. ``P→R``."""
    return f"{from_phase.value}→{to_phase.value}"


# =============================================================================
# Evaluator
# =============================================================================


class GateEvaluator:
    """Evaluates the plan and approval gates against a workflow status."""

    PLAN_HINT = "Use scaffoldPlan and linkPlan to create and link a plan, or enable autonomous mode."
    APPROVAL_HINT = "Use workflowApprovePlan to approve the plan, or enable autonomous mode."

    def check(self, status: WorkflowStatus, target: PhaseCode | None = None) -> GateCheckResult:
        """Evaluate gates for moving to ``target`` (default: the next route phase).

        Read-only: the status is never modified.

        Args:
            status: Current workflow status
            target: Destination phase, or None for the next active phase

        Returns:
            GateCheckResult describing every gate and the first blocker
        """
        current = status.current_phase
        target = target or status.next_phase()
        settings = status.settings

        if settings.autonomous_mode:
            return GateCheckResult(
                can_advance=True,
                gates={gate: GateStatus(passed=True, required=False) for gate in GateType},
                transition=transition_label(current, target) if target else None,
                from_phase=current,
                to_phase=target,
            )

        plan_applies = settings.require_plan and target is not None and current == PhaseCode.P
        plan_passed = not plan_applies or status.has_linked_plan()

        approval_applies = (
            settings.require_approval
            and target == PhaseCode.E
            and current in (PhaseCode.P, PhaseCode.R)
        )
        approval_passed = not approval_applies or status.approval.plan_approved

        result = GateCheckResult(
            can_advance=plan_passed and approval_passed,
            gates={
                GateType.PLAN_REQUIRED: GateStatus(passed=plan_passed, required=plan_applies),
                GateType.APPROVAL_REQUIRED: GateStatus(passed=approval_passed, required=approval_applies),
            },
            transition=transition_label(current, target) if target else None,
            from_phase=current,
            to_phase=target,
        )

        if not plan_passed:
            result.blocking_gate = GateType.PLAN_REQUIRED
            result.blocking_reason = (
                f"A plan must be linked before advancing from Planning to {phase_name(target)} phase."
            )
            result.hint = self.PLAN_HINT
        elif not approval_passed:
            result.blocking_gate = GateType.APPROVAL_REQUIRED
            result.blocking_reason = (
                f"The plan must be approved before advancing from {phase_name(current)} "
                f"to Execution phase."
            )
            result.hint = self.APPROVAL_HINT

        return result

    def enforce(self, status: WorkflowStatus, target: PhaseCode | None, force: bool = False) -> None:
        """Raise if the transition to ``target`` is blocked.

        Raises:
            WorkflowGateError: If a gate blocks and neither force nor
                autonomous mode is set
        """
        if force:
            logger.info(f"Gate check bypassed with force for '{status.project.name}'")
            return
        result = self.check(status, target)
        if result.can_advance:
            return
        logger.warning(
            f"Transition {result.transition} blocked by {result.blocking_gate.value} "
            f"for '{status.project.name}'"
        )
        raise result.to_error()
