"""WorkflowService: the façade every caller (gateway, CLI, scripts) goes through.

One instance per repository. Every mutating operation follows the same
cycle: load status.yaml, mutate the in-memory copy, write it back once.
Gate failures and other errors raise before the write, leaving the file
untouched.

States:
    NotInitialized --init--> ActivePhase (route filtered by scale)
    ActivePhase --advance--> ActivePhase | Complete
    Complete --advance--> Complete (no-op)

Example:
    service = WorkflowService("/path/to/repo")
    service.init("add-login", description="add a small login form")
    service.link_plan("add-login")
    next_phase = service.advance()
"""

import logging
from pathlib import Path
from typing import Any

from prevc.config import (
    ApprovalStatus,
    ContextLayout,
    ExecutionAction,
    PhaseCode,
    ProjectScale,
    RoleId,
    StatusType,
)
from prevc.orchestration.agent_orchestrator import get_phase_orchestration, suggest_next_agent
from prevc.orchestration.handoff import HandoffCoordinator, HandoffResult
from prevc.plans.models import LinkedPlan, PlanDecision, PlanExecutionTracking, WorkflowPlans
from prevc.plans.plan_linker import PlanLinker
from prevc.service.formatting import build_summary, format_status, recommended_actions
from prevc.telemetry import phase_span, workflow_span
from prevc.workflow.collaboration import (
    CollaborationManager,
    CollaborationSession,
    CollaborationSynthesis,
    Contribution,
)
from prevc.workflow.errors import InvalidParamsError, NoPlanToApproveError, WorkflowExistsError
from prevc.workflow.gates import GateCheckResult, GateEvaluator, default_settings
from prevc.workflow.initializer import create_initial_status
from prevc.workflow.roles import roles_for_phase
from prevc.workflow.scaling import ProjectContext, detect_project_scale, scale_from_name
from prevc.workflow.status_models import (
    ApprovalRecord,
    PlanRef,
    WorkflowSettings,
    WorkflowStatus,
    utc_now,
)
from prevc.workflow.status_store import StatusStore

logger = logging.getLogger(__name__)

DEFAULT_APPROVER = "reviewer"


def _as_role(value: RoleId | str) -> RoleId:
    try:
        return RoleId(value)
    except ValueError as e:
        raise InvalidParamsError(f"Unknown role: {value}") from e


class WorkflowService:
    """PREVC workflow operations for one repository.

    Args:
        repo_path: Repository root, or its ``.context`` directory
    """

    def __init__(self, repo_path: str | Path) -> None:
        self.layout = ContextLayout.for_repo(repo_path)
        self.store = StatusStore(self.layout)
        self.gates = GateEvaluator()
        self.handoffs = HandoffCoordinator()
        self.collaboration = CollaborationManager()
        self.plans = PlanLinker(self.layout, self.store)

    @property
    def status_file(self) -> Path:
        return self.layout.status_file

    def _span(self, operation: str, **attributes: Any):
        return workflow_span(operation, repo_path=str(self.layout.repo_path), **attributes)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def exists(self) -> bool:
        return self.store.exists()

    def init(
        self,
        name: str,
        description: str | None = None,
        scale: str | int | ProjectScale | None = None,
        files: list[str] | None = None,
        complexity: str | None = None,
        compliance: bool = False,
        autonomous: bool | None = None,
        require_plan: bool | None = None,
        require_approval: bool | None = None,
        archive_previous: bool | None = None,
    ) -> WorkflowStatus:
        """Start a new workflow.

        Args:
            name: Workflow name
            description: Free text used for scale detection
            scale: Explicit scale (name or 0-4); detected when omitted
            files: Affected files, for scale detection
            complexity: low, medium or high, for scale detection
            compliance: Whether compliance requirements apply
            autonomous: Override for autonomous_mode
            require_plan: Override for require_plan
            require_approval: Override for require_approval
            archive_previous: What to do with an existing workflow:
                True archives it, False deletes it, None refuses

        Returns:
            The persisted WorkflowStatus

        Raises:
            InvalidParamsError: If the name is empty
            InvalidScaleError: If an explicit scale is unknown
            WorkflowExistsError: If a workflow exists and archive_previous is None
        """
        name = (name or "").strip()
        if not name:
            raise InvalidParamsError("Workflow name is required")

        with self._span("init", workflow_name=name) as span:
            if scale is not None:
                resolved = scale_from_name(scale)
            else:
                resolved = detect_project_scale(
                    ProjectContext(
                        name=name,
                        description=description or name,
                        files=files,
                        complexity=complexity,
                        has_compliance=compliance,
                    )
                )
            span.set_attribute("workflow.scale", resolved.name)

            if self.store.exists():
                if archive_previous is None:
                    raise WorkflowExistsError()
                if archive_previous:
                    self.store.archive()
                    self.plans.archive_plans()
                else:
                    self.store.delete()
                    self.plans.clear_all_plans()

            settings = default_settings(resolved, autonomous, require_plan, require_approval)
            status = create_initial_status(name, resolved, description, settings)
            self.store.save(status)

        logger.info(
            f"Initialized workflow '{name}' at scale {resolved.name} "
            f"(phases: {', '.join(p.value for p in status.active_phases())})"
        )
        return status

    def advance(self, outputs: list[str] | None = None, force: bool = False) -> PhaseCode | None:
        """Complete the current phase and move to the next route phase.

        Args:
            outputs: Output paths produced by the phase being completed
            force: Bypass gates for this advance only

        Returns:
            The new current phase, or None when the workflow is (or just
            became) complete

        Raises:
            NoWorkflowError: If no workflow exists
            WorkflowGateError: If a gate blocks the transition
        """
        with self._span("advance", **{"workflow.force": force}):
            if self.store.load().is_complete():
                logger.debug("Workflow already complete, nothing to advance")
                return None

            with self.store.update() as status:
                current = status.current_phase
                target = status.next_phase()
                with phase_span(current.value, target.value if target else None, status.project.name):
                    if target is not None:
                        self.gates.enforce(status, target, force=force)
                    status.complete_phase(current, outputs)
                    if target is not None:
                        status.transition_to(target)

            primary = status.project.plan
            if primary:
                self.plans.sync_plan_markdown(primary)

        if target is None:
            logger.info(f"Workflow '{status.project.name}' completed")
        else:
            logger.info(f"Workflow '{status.project.name}' advanced {current.value} → {target.value}")
        return target

    def is_complete(self) -> bool:
        return self.store.load().is_complete()

    # =========================================================================
    # Queries
    # =========================================================================

    def get_status(self) -> WorkflowStatus:
        return self.store.load()

    def get_summary(self) -> dict[str, Any]:
        return build_summary(self.store.load())

    def get_formatted_status(self) -> str:
        return format_status(self.store.load())

    def get_recommended_actions(self) -> list[str]:
        return recommended_actions(self.store.load())

    def check_gates(self) -> GateCheckResult:
        """Preview the gates for the next transition. Never writes."""
        return self.gates.check(self.store.load())

    def get_phase_orchestration(self, phase: PhaseCode | str | None = None) -> dict[str, Any]:
        """Agents, roles and docs for ``phase`` (default: the current phase)."""
        if phase is None:
            phase = self.store.load().current_phase
        return get_phase_orchestration(phase)

    def get_next_agent_suggestion(self, current_agent: str) -> dict[str, str] | None:
        return suggest_next_agent(current_agent, self.store.load().current_phase)

    # =========================================================================
    # Settings and approval
    # =========================================================================

    def get_settings(self) -> WorkflowSettings:
        return self.store.load().settings

    def set_settings(
        self,
        autonomous_mode: bool | None = None,
        require_plan: bool | None = None,
        require_approval: bool | None = None,
    ) -> WorkflowSettings:
        """Update individual gate settings; None leaves a setting unchanged."""
        with self._span("set_settings"):
            with self.store.update() as status:
                settings = status.settings
                if autonomous_mode is not None:
                    settings.autonomous_mode = autonomous_mode
                if require_plan is not None:
                    settings.require_plan = require_plan
                if require_approval is not None:
                    settings.require_approval = require_approval
                status.record(
                    ExecutionAction.SETTINGS_CHANGED,
                    description=(
                        f"autonomous_mode={settings.autonomous_mode}, "
                        f"require_plan={settings.require_plan}, "
                        f"require_approval={settings.require_approval}"
                    ),
                )
        logger.info(f"Updated settings for '{status.project.name}': {settings.model_dump()}")
        return settings

    def set_autonomous_mode(self, enabled: bool, reason: str | None = None) -> WorkflowSettings:
        settings = self.set_settings(autonomous_mode=enabled)
        logger.info(f"Autonomous mode {'enabled' if enabled else 'disabled'}{f': {reason}' if reason else ''}")
        return settings

    def get_approval(self) -> ApprovalRecord:
        return self.store.load().approval

    def mark_plan_created(self, plan_slug: str) -> None:
        """Record that a plan exists for this workflow without linking it."""
        with self.store.update() as status:
            status.approval.plan_created = True
            status.project.plan = plan_slug
            status.record(ExecutionAction.PLAN_LINKED, plan=plan_slug)

    def approve_plan(
        self,
        approver: str = DEFAULT_APPROVER,
        notes: str | None = None,
        plan_slug: str | None = None,
    ) -> ApprovalRecord:
        """Approve the linked plan.

        Args:
            approver: Role or person approving
            notes: Optional approval notes
            plan_slug: Linked plan to mark approved (default: the primary plan)

        Returns:
            The updated ApprovalRecord

        Raises:
            NoWorkflowError: If no workflow exists
            NoPlanToApproveError: If no plan is linked
        """
        with self._span("approve_plan"):
            with self.store.update() as status:
                if not status.has_linked_plan():
                    raise NoPlanToApproveError()

                now = utc_now()
                approval = status.approval
                approval.plan_created = True
                approval.plan_approved = True
                approval.approved_by = approver
                approval.approved_at = now
                if notes:
                    approval.approval_notes = notes

                slug = plan_slug or status.project.plan
                if slug:
                    for ref in status.linked_plans:
                        if ref.slug == slug:
                            ref.approval_status = ApprovalStatus.APPROVED
                            ref.approved_by = approver
                            ref.approved_at = now
                status.record(ExecutionAction.PLAN_APPROVED, plan=slug, approved_by=approver)

            if slug:
                self.plans.mark_plan_approved(slug, approver, now)

        logger.info(f"Plan approved by {approver} for '{status.project.name}'")
        return approval

    # =========================================================================
    # Roles, handoffs and tasks
    # =========================================================================

    def handoff(self, source: str, target: str, artifacts: list[str] | None = None) -> HandoffResult:
        """Transfer responsibility between roles or agents.

        Raises:
            NoWorkflowError: If no workflow exists
            InvalidParamsError: If source or target is empty
        """
        with self._span("handoff"):
            with self.store.update() as status:
                return self.handoffs.handoff(status, source, target, artifacts)

    def update_task(self, task: str) -> None:
        """Set the current task of the current phase (and its active role)."""
        with self.store.update() as status:
            phase = status.phases[status.current_phase]
            phase.current_task = task
            role = status.active_role()
            if role is not None:
                phase.role = role
                status.roles[role].current_task = task

    def start_role(self, role: RoleId | str) -> None:
        with self.store.update() as status:
            self.handoffs.start_role(status, _as_role(role))

    def complete_role(self, role: RoleId | str, outputs: list[str] | None = None) -> None:
        with self.store.update() as status:
            self.handoffs.complete_role(status, _as_role(role), outputs)

    # =========================================================================
    # Collaboration
    # =========================================================================

    def start_collaboration(
        self, topic: str, participants: list[RoleId | str] | None = None
    ) -> CollaborationSession:
        """Open a collaboration session.

        Participants default to the roles of the current phase when a
        workflow exists, otherwise to the roles relevant to the topic.
        """
        topic = (topic or "").strip()
        if not topic:
            raise InvalidParamsError("Collaboration topic is required")

        if participants:
            roles = [_as_role(p) for p in participants]
        elif self.store.exists():
            roles = roles_for_phase(self.store.load().current_phase)
        else:
            roles = None
        return self.collaboration.create_session(topic, roles)

    def contribute(self, session_id: str, role: RoleId | str, message: str) -> Contribution:
        return self.collaboration.get_session(session_id).contribute(role, message)

    def end_collaboration(self, session_id: str) -> CollaborationSynthesis:
        return self.collaboration.end_session(session_id)

    # =========================================================================
    # Plans
    # =========================================================================

    def link_plan(self, slug: str) -> PlanRef:
        """Link a scaffolded plan and, when a workflow exists, satisfy the plan gate.

        Raises:
            PlanNotFoundError: If ``plans/<slug>.md`` does not exist
        """
        with self._span("link_plan", **{"plan.slug": slug}):
            ref = self.plans.link_plan(slug)
            if self.store.exists():
                with self.store.update() as status:
                    status.approval.plan_created = True
                    if not status.project.plan:
                        status.project.plan = slug
                    status.linked_plans = [p for p in status.linked_plans if p.slug != slug]
                    status.linked_plans.append(ref)
                    status.record(ExecutionAction.PLAN_LINKED, plan=slug)
        return ref

    def get_linked_plans(self) -> WorkflowPlans:
        return self.plans.get_linked_plans()

    def get_linked_plan(self, slug: str) -> LinkedPlan | None:
        return self.plans.get_linked_plan(slug)

    def get_plans_for_phase(self, phase: PhaseCode | str) -> list[LinkedPlan]:
        return self.plans.get_plans_for_phase(PhaseCode(phase))

    def get_plan_progress(self, slug: str) -> dict[str, Any]:
        return self.plans.get_plan_progress(slug)

    def get_plan_execution_status(self, slug: str) -> PlanExecutionTracking | None:
        return self.plans.get_execution_status(slug)

    def update_plan_phase(self, slug: str, phase_id: str, status: StatusType | str) -> bool:
        return self.plans.update_plan_phase(slug, phase_id, StatusType(status))

    def update_plan_step(
        self,
        slug: str,
        phase_id: str,
        step_index: int,
        status: StatusType | str,
        output: str | None = None,
        notes: str | None = None,
    ) -> bool:
        return self.plans.update_plan_step(slug, phase_id, step_index, StatusType(status), output, notes)

    def record_decision(
        self,
        slug: str,
        title: str,
        description: str,
        phase: PhaseCode | str | None = None,
        alternatives: list[str] | None = None,
        decided_by: str | None = None,
    ) -> PlanDecision:
        return self.plans.record_decision(
            slug,
            title,
            description,
            PhaseCode(phase) if phase else None,
            alternatives,
            decided_by,
        )

    def sync_plan_markdown(self, slug: str) -> bool:
        return self.plans.sync_plan_markdown(slug)
