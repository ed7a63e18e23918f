"""Agent-facing gateway over WorkflowService.

``WorkflowGateway.dispatch(operation, params)`` validates params against the
operation's model, runs exactly one handler and returns a plain-dict
envelope. Recoverable ``WorkflowError``s become ``success: false``
envelopes; ``PersistenceError`` always propagates so a corrupt document is
never mistaken for a soft failure.

Example:
    gateway = WorkflowGateway("/path/to/repo")
    gateway.dispatch("init", {"name": "add-login", "scale": "SMALL"})
    gateway.dispatch("advance", {})
    # {"success": False, "errorKind": "gate_blocked", "gate": "plan_required", ...}
"""

import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from prevc.config import ErrorKind, GateType, PhaseCode
from prevc.gateway.operations import (
    PARAMS_MODELS,
    AdvanceParams,
    ApprovePlanParams,
    CollaborateParams,
    ContributeParams,
    EndCollaborationParams,
    HandoffParams,
    InitParams,
    NoParams,
    Operation,
    PlansForPhaseParams,
    PlanSlugParams,
    RecordDecisionParams,
    SetAutonomousParams,
    UpdatePlanPhaseParams,
    UpdatePlanStepParams,
)
from prevc.gateway.responses import (
    error_response,
    failure_response,
    format_validation_errors,
    gate_error_response,
    invalid_params_response,
    no_workflow_response,
    success_response,
)
from prevc.service.workflow_service import WorkflowService
from prevc.workflow.errors import NoWorkflowError, PersistenceError, WorkflowError, WorkflowGateError
from prevc.workflow.phases import phase_name
from prevc.workflow.roles import role_display_name

logger = logging.getLogger(__name__)

Handler = Callable[[Any], dict[str, Any]]

AUTONOMOUS_ON_EFFECT = "All workflow gates are now bypassed. Use advance() freely."
AUTONOMOUS_OFF_EFFECT = "Workflow gates are now enforced based on settings."


def _phase_ref(phase: PhaseCode) -> dict[str, str]:
    return {"code": phase.value, "name": phase_name(phase)}


def _dump_states(states: Mapping[Any, BaseModel]) -> dict[str, Any]:
    return {
        getattr(key, "value", key): state.model_dump(mode="json", exclude_none=True)
        for key, state in states.items()
    }


class WorkflowGateway:
    """Dispatches gateway operations for one repository.

    Args:
        repo_path: Repository root, or its ``.context`` directory
        service: Service to dispatch to (one is created when omitted)

    Raises:
        RuntimeError: If an operation has no handler or no params model
    """

    def __init__(self, repo_path: str | Path, service: WorkflowService | None = None) -> None:
        self.service = service or WorkflowService(repo_path)
        self.handlers: Mapping[Operation, Handler] = {
            Operation.INIT: self._init,
            Operation.STATUS: self._status,
            Operation.ADVANCE: self._advance,
            Operation.HANDOFF: self._handoff,
            Operation.COLLABORATE: self._collaborate,
            Operation.CONTRIBUTE: self._contribute,
            Operation.END_COLLABORATION: self._end_collaboration,
            Operation.GET_GATES: self._get_gates,
            Operation.APPROVE_PLAN: self._approve_plan,
            Operation.SET_AUTONOMOUS: self._set_autonomous,
            Operation.RECOMMENDED_ACTIONS: self._recommended_actions,
            Operation.LINK_PLAN: self._link_plan,
            Operation.GET_LINKED_PLANS: self._get_linked_plans,
            Operation.GET_PLAN_DETAILS: self._get_plan_details,
            Operation.GET_PLANS_FOR_PHASE: self._get_plans_for_phase,
            Operation.UPDATE_PLAN_PHASE: self._update_plan_phase,
            Operation.UPDATE_PLAN_STEP: self._update_plan_step,
            Operation.RECORD_DECISION: self._record_decision,
            Operation.GET_PLAN_STATUS: self._get_plan_status,
            Operation.SYNC_PLAN_MARKDOWN: self._sync_plan_markdown,
        }
        missing = [op.value for op in Operation if op not in self.handlers or op not in PARAMS_MODELS]
        if missing:
            raise RuntimeError(f"Gateway operations without handler or params model: {', '.join(missing)}")

    def dispatch(self, operation: Operation | str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Run one operation and wrap the outcome in an envelope.

        Args:
            operation: Operation (or its name)
            params: Raw params, snake_case or camelCase

        Returns:
            Envelope dict with ``success``

        Raises:
            PersistenceError: If a workflow or plan file is corrupt
        """
        try:
            op = Operation(operation)
        except ValueError:
            return invalid_params_response(f"Unknown operation: {operation}")

        try:
            parsed = PARAMS_MODELS[op].model_validate(dict(params or {}))
        except ValidationError as e:
            logger.debug(f"Rejected params for {op.value}: {e}")
            return invalid_params_response(format_validation_errors(e.errors()))

        logger.debug(f"Dispatching {op.value}")
        try:
            return self.handlers[op](parsed)
        except PersistenceError:
            raise
        except NoWorkflowError as e:
            return no_workflow_response(e, self.service.status_file)
        except WorkflowGateError as e:
            return gate_error_response(e)
        except WorkflowError as e:
            logger.info(f"{op.value} failed: {e.kind.value}: {e.message}")
            return error_response(e)

    # =========================================================================
    # Workflow
    # =========================================================================

    def _init(self, params: InitParams) -> dict[str, Any]:
        status = self.service.init(
            params.name,
            description=params.description,
            scale=params.scale,
            files=params.files,
            complexity=params.complexity,
            compliance=params.compliance,
            autonomous=params.autonomous,
            require_plan=params.require_plan,
            require_approval=params.require_approval,
            archive_previous=params.archive_previous,
        )
        return success_response(
            message=f"Workflow initialized: {status.project.name}",
            name=status.project.name,
            scale=status.project.scale.name,
            currentPhase=_phase_ref(status.current_phase),
            phases=[phase.value for phase in status.active_phases()],
            settings=status.settings.model_dump(mode="json"),
            statusFilePath=str(self.service.status_file),
            contextPath=str(self.service.layout.context_dir),
        )

    def _status(self, params: NoParams) -> dict[str, Any]:
        status = self.service.get_status()
        summary = self.service.get_summary()
        return success_response(
            name=status.project.name,
            scale=status.project.scale.name,
            currentPhase=_phase_ref(status.current_phase),
            progress=summary["progress"],
            isComplete=summary["is_complete"],
            phases=_dump_states(status.phases),
            roles=_dump_states(status.roles),
            agents=_dump_states(status.agents),
            resumeContext=status.execution.resume_context,
            orchestration=self.service.get_phase_orchestration(status.current_phase),
            formatted=self.service.get_formatted_status(),
            statusFilePath=str(self.service.status_file),
        )

    def _advance(self, params: AdvanceParams) -> dict[str, Any]:
        next_phase = self.service.advance(params.outputs, force=params.force)
        if next_phase is None:
            return success_response(message="Workflow completed!", isComplete=True)
        return success_response(
            message=f"Advanced to {phase_name(next_phase)} phase",
            nextPhase=_phase_ref(next_phase),
            orchestration=self.service.get_phase_orchestration(next_phase),
        )

    def _handoff(self, params: HandoffParams) -> dict[str, Any]:
        result = self.service.handoff(params.source, params.target, params.artifacts)
        record = result.record
        return success_response(
            message=f"Handoff complete: {record.source} → {record.target}",
            handoff={
                "id": record.id,
                "from": record.source,
                "to": record.target,
                "artifacts": record.artifacts,
                "phase": record.phase.value,
            },
            nextSuggestion=result.suggestion,
        )

    def _collaborate(self, params: CollaborateParams) -> dict[str, Any]:
        session = self.service.start_collaboration(params.topic, params.participants)
        return success_response(
            message=f"Collaboration session started: {session.topic}",
            sessionId=session.id,
            topic=session.topic,
            participants=[
                {"role": role.value, "displayName": role_display_name(role)} for role in session.participants
            ],
        )

    def _contribute(self, params: ContributeParams) -> dict[str, Any]:
        contribution = self.service.contribute(params.session_id, params.role, params.message)
        return success_response(sessionId=params.session_id, contribution=contribution.to_dict())

    def _end_collaboration(self, params: EndCollaborationParams) -> dict[str, Any]:
        synthesis = self.service.end_collaboration(params.session_id)
        return success_response(
            message=f"Collaboration concluded: {synthesis.topic}",
            sessionId=params.session_id,
            synthesis=synthesis.to_dict(),
        )

    def _get_gates(self, params: NoParams) -> dict[str, Any]:
        status = self.service.get_status()
        result = self.service.check_gates()
        return success_response(
            currentPhase=_phase_ref(status.current_phase),
            **result.to_dict(),
            settings=status.settings.model_dump(mode="json"),
            approval=status.approval.model_dump(mode="json", exclude_none=True),
        )

    def _approve_plan(self, params: ApprovePlanParams) -> dict[str, Any]:
        approval = self.service.approve_plan(params.approver, params.notes, params.plan_slug)
        return success_response(
            message="Plan approved successfully",
            approval=approval.model_dump(mode="json", exclude_none=True),
            canAdvanceToExecution=approval.plan_approved,
        )

    def _set_autonomous(self, params: SetAutonomousParams) -> dict[str, Any]:
        settings = self.service.set_autonomous_mode(params.enabled, params.reason)
        state = "enabled" if params.enabled else "disabled"
        return success_response(
            message=f"Autonomous mode {state}{f': {params.reason}' if params.reason else ''}",
            settings=settings.model_dump(mode="json"),
            effect=AUTONOMOUS_ON_EFFECT if params.enabled else AUTONOMOUS_OFF_EFFECT,
        )

    def _recommended_actions(self, params: NoParams) -> dict[str, Any]:
        status = self.service.get_status()
        return success_response(
            currentPhase=_phase_ref(status.current_phase),
            actions=self.service.get_recommended_actions(),
        )

    # =========================================================================
    # Plans
    # =========================================================================

    def _link_plan(self, params: PlanSlugParams) -> dict[str, Any]:
        ref = self.service.link_plan(params.plan_slug)
        has_workflow = self.service.exists()
        can_advance = has_workflow and self.service.check_gates().gates[GateType.PLAN_REQUIRED].passed
        return success_response(
            plan=ref.model_dump(mode="json", exclude_none=True),
            planCreatedForGates=has_workflow,
            canAdvanceToReview=can_advance,
        )

    def _get_linked_plans(self, params: NoParams) -> dict[str, Any]:
        return success_response(plans=self.service.get_linked_plans().model_dump(mode="json", exclude_none=True))

    def _get_plan_details(self, params: PlanSlugParams) -> dict[str, Any]:
        plan = self.service.get_linked_plan(params.plan_slug)
        if plan is None:
            return failure_response(f"Plan not found or not linked: {params.plan_slug}", ErrorKind.PLAN_NOT_FOUND)
        details = plan.to_dict()
        for phase in details["phases"]:
            phase["prevcName"] = phase_name(phase["prevc"])
        return success_response(plan=details)

    def _get_plans_for_phase(self, params: PlansForPhaseParams) -> dict[str, Any]:
        phase = params.phase or self.service.get_status().current_phase
        plans = self.service.get_plans_for_phase(phase)
        return success_response(
            phase=phase.value,
            phaseName=phase_name(phase),
            plans=[
                {
                    "slug": plan.ref.slug,
                    "title": plan.ref.title,
                    "phasesInThisPrevc": [
                        {"id": p.id, "name": p.name, "status": p.status.value} for p in plan.phases_for(phase)
                    ],
                    "hasPendingWork": self.service.plans.has_pending_work_for_phase(plan, phase),
                }
                for plan in plans
            ],
        )

    def _update_plan_phase(self, params: UpdatePlanPhaseParams) -> dict[str, Any]:
        fields = {"planSlug": params.plan_slug, "phaseId": params.phase_id, "status": params.status.value}
        if not self.service.update_plan_phase(params.plan_slug, params.phase_id, params.status):
            return failure_response("Plan or plan phase not found", ErrorKind.PLAN_NOT_FOUND, **fields)
        return success_response(**fields)

    def _update_plan_step(self, params: UpdatePlanStepParams) -> dict[str, Any]:
        fields = {
            "planSlug": params.plan_slug,
            "phaseId": params.phase_id,
            "stepIndex": params.step_index,
            "status": params.status.value,
        }
        updated = self.service.update_plan_step(
            params.plan_slug,
            params.phase_id,
            params.step_index,
            params.status,
            output=params.output,
            notes=params.notes,
        )
        if not updated:
            return failure_response("Plan, plan phase or step not found", ErrorKind.PLAN_NOT_FOUND, **fields)
        return success_response(**fields)

    def _record_decision(self, params: RecordDecisionParams) -> dict[str, Any]:
        decision = self.service.record_decision(
            params.plan_slug,
            params.title,
            params.description,
            phase=params.phase,
            alternatives=params.alternatives,
            decided_by=params.decided_by,
        )
        return success_response(decision=decision.model_dump(mode="json", exclude_none=True))

    def _get_plan_status(self, params: PlanSlugParams) -> dict[str, Any]:
        tracking = self.service.get_plan_execution_status(params.plan_slug)
        if tracking is None:
            return failure_response(
                "Plan tracking not found. The plan may not have any execution data yet.",
                ErrorKind.PLAN_NOT_FOUND,
            )
        return success_response(
            progress=self.service.get_plan_progress(params.plan_slug),
            tracking=tracking.model_dump(mode="json", exclude_none=True),
        )

    def _sync_plan_markdown(self, params: PlanSlugParams) -> dict[str, Any]:
        if not self.service.sync_plan_markdown(params.plan_slug):
            return failure_response(
                "Failed to sync - plan or tracking not found",
                ErrorKind.PLAN_NOT_FOUND,
                planSlug=params.plan_slug,
            )
        return success_response(planSlug=params.plan_slug, message="Plan markdown synced successfully")
