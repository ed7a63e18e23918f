"""Tests for WorkflowService.

Covers:
- Init: scale detection, explicit scale, re-init archive/delete/refuse
- Advance: gates, force, autonomous mode, completion no-op
- Read-only operations never write
- Plan approval, linking and markdown sync on advance
- Handoffs, roles, tasks and collaboration through the façade
"""

import pytest

from prevc.config import ActivityStatus, ExecutionAction, GateType, PhaseCode, ProjectScale, RoleId, StatusType
from prevc.service.workflow_service import WorkflowService
from prevc.workflow.errors import (
    CollaborationError,
    InvalidParamsError,
    InvalidScaleError,
    NoPlanToApproveError,
    NoWorkflowError,
    PersistenceError,
    WorkflowExistsError,
    WorkflowGateError,
)
from prevc.workflow.roles import roles_for_phase


def _status_text(service: WorkflowService) -> str:
    return service.status_file.read_text(encoding="utf-8")


class TestInit:
    """Starting workflows."""

    def test_bug_fix_is_quick(self, service):
        """A bug fix runs Execution and Validation only."""
        status = service.init("Add login", description="fix small bug in auth")
        assert status.project.scale == ProjectScale.QUICK
        assert status.active_phases() == [PhaseCode.E, PhaseCode.V]
        assert status.current_phase == PhaseCode.E
        assert status.settings.autonomous_mode is True
        assert service.exists()

    def test_compliance_is_enterprise(self, service):
        status = service.init("payments", description="PCI compliance audit")
        assert status.project.scale == ProjectScale.ENTERPRISE
        assert status.active_phases() == list(PhaseCode)

    def test_explicit_scale_and_overrides(self, service):
        status = service.init("feature", scale="small", require_approval=True)
        assert status.project.scale == ProjectScale.SMALL
        assert status.settings.require_approval is True
        assert status.phases[PhaseCode.R].reason == "Not required for scale SMALL"

    def test_name_defaults_description_for_detection(self, service):
        assert service.init("hotfix-login").project.scale == ProjectScale.QUICK

    def test_empty_name_rejected(self, service):
        with pytest.raises(InvalidParamsError):
            service.init("   ")
        assert not service.exists()

    def test_invalid_scale_rejected(self, service):
        with pytest.raises(InvalidScaleError):
            service.init("feature", scale="huge")
        assert not service.exists()

    def test_existing_workflow_refused(self, service):
        service.init("first", scale="MEDIUM")
        before = _status_text(service)
        with pytest.raises(WorkflowExistsError):
            service.init("second", scale="SMALL")
        assert _status_text(service) == before

    def test_reinit_archives_previous(self, service, write_plan):
        service.init("first", scale="MEDIUM")
        write_plan("add-login")
        service.link_plan("add-login")

        status = service.init("second", scale="SMALL", archive_previous=True)

        archived = sorted(p.name for p in service.layout.archive_dir.iterdir())
        assert any(name.startswith("first-") for name in archived)
        assert any(name.startswith("plans-") for name in archived)
        assert status.project.name == "second"
        assert service.get_linked_plans().active == []

    def test_reinit_deletes_previous(self, service, write_plan):
        service.init("first", scale="MEDIUM")
        write_plan("add-login")
        service.link_plan("add-login")

        service.init("second", scale="SMALL", archive_previous=False)

        assert not service.layout.archive_dir.exists()
        assert service.get_linked_plans().active == []
        assert service.get_status().project.name == "second"

    def test_context_dir_env_var(self, repo, monkeypatch):
        monkeypatch.setenv("PREVC_CONTEXT_DIR", ".prevc")
        service = WorkflowService(repo)
        service.init("feature", scale="QUICK")
        assert (repo / ".prevc" / "workflow" / "status.yaml").exists()


class TestAdvance:
    """Phase transitions."""

    def test_no_workflow(self, service):
        with pytest.raises(NoWorkflowError):
            service.advance()

    def test_plan_gate_blocks_and_leaves_file_untouched(self, service):
        service.init("my-feature", scale="SMALL", require_plan=True)
        before = _status_text(service)

        with pytest.raises(WorkflowGateError) as exc_info:
            service.advance()

        assert exc_info.value.gate == GateType.PLAN_REQUIRED
        assert exc_info.value.transition == "P→E"
        assert _status_text(service) == before

    def test_linking_a_plan_opens_the_gate(self, service, write_plan):
        service.init("my-feature", scale="SMALL", require_plan=True)
        write_plan("my-plan")
        service.link_plan("my-plan")

        assert service.advance() == PhaseCode.E
        status = service.get_status()
        assert status.phases[PhaseCode.P].status == StatusType.COMPLETED
        assert status.phases[PhaseCode.E].status == StatusType.IN_PROGRESS

    def test_medium_blocks_planning_to_review(self, service, write_plan):
        service.init("my-feature", scale="MEDIUM")
        with pytest.raises(WorkflowGateError) as exc_info:
            service.advance()
        assert exc_info.value.transition == "P→R"

        write_plan("my-plan")
        service.link_plan("my-plan")
        assert service.advance() == PhaseCode.R

    def test_review_needs_approval(self, service, write_plan):
        service.init("my-feature", scale="MEDIUM")
        write_plan("my-plan")
        service.link_plan("my-plan")
        service.advance()

        with pytest.raises(WorkflowGateError) as exc_info:
            service.advance()
        assert exc_info.value.gate == GateType.APPROVAL_REQUIRED

        service.approve_plan(notes="looks good")
        assert service.advance() == PhaseCode.E

    def test_force_bypasses_once(self, service):
        service.init("my-feature", scale="MEDIUM")
        assert service.advance(force=True) == PhaseCode.R
        with pytest.raises(WorkflowGateError):
            service.advance()

    def test_autonomous_mode_bypasses_gates(self, service):
        service.init("my-feature", scale="MEDIUM")
        service.set_autonomous_mode(True, reason="demo")
        assert service.advance() == PhaseCode.R
        assert service.advance() == PhaseCode.E
        actions = [entry.action for entry in service.get_status().execution.history]
        assert ExecutionAction.SETTINGS_CHANGED in actions

    def test_outputs_recorded(self, service):
        service.init("fix", scale="QUICK")
        service.advance(outputs=["src/auth.py"])
        outputs = service.get_status().phases[PhaseCode.E].outputs
        assert [(o.path, o.status) for o in outputs] == [("src/auth.py", "filled")]

    def test_completion_and_noop(self, service):
        service.init("fix", scale="QUICK")
        assert service.advance() == PhaseCode.V
        assert service.advance() is None
        assert service.is_complete()

        before = _status_text(service)
        assert service.advance() is None
        assert _status_text(service) == before

    def test_advance_syncs_primary_plan(self, service, write_plan):
        service.init("my-feature", scale="SMALL")
        path = write_plan("my-plan")
        service.link_plan("my-plan")
        service.update_plan_phase("my-plan", "phase-1", "completed")
        assert "## Execution History" not in path.read_text(encoding="utf-8")

        service.advance()

        assert "## Execution History" in path.read_text(encoding="utf-8")


class TestReadOnly:
    """Queries never write status.yaml."""

    def test_check_gates_does_not_write(self, service):
        service.init("my-feature", scale="SMALL")
        before = _status_text(service)
        result = service.check_gates()
        assert result.can_advance is False
        assert _status_text(service) == before

    def test_summary(self, service):
        service.init("my-feature", scale="SMALL")
        summary = service.get_summary()
        assert summary["name"] == "my-feature"
        assert summary["scale"] == "SMALL"
        assert summary["current_phase"] == "P"
        assert summary["progress"] == {"completed": 0, "total": 3, "percentage": 0}
        assert summary["is_complete"] is False

    def test_phase_orchestration_defaults_to_current(self, service):
        service.init("fix", scale="QUICK")
        assert service.get_phase_orchestration()["phase"] == "E"
        assert service.get_phase_orchestration("V")["phase"] == "V"

    def test_next_agent_suggestion(self, service):
        service.init("fix", scale="QUICK")
        assert service.get_next_agent_suggestion("feature-developer")["agent"] == "backend-specialist"

    def test_corrupt_status_propagates(self, service):
        service.init("fix", scale="QUICK")
        service.status_file.write_text("project: [broken\n", encoding="utf-8")
        with pytest.raises(PersistenceError):
            service.get_status()


class TestApproval:
    """Plan approval."""

    def test_approve_without_plan(self, service):
        service.init("my-feature", scale="MEDIUM")
        before = _status_text(service)
        with pytest.raises(NoPlanToApproveError):
            service.approve_plan()
        assert _status_text(service) == before

    def test_approve_marks_linked_plan(self, service, write_plan):
        service.init("my-feature", scale="MEDIUM")
        write_plan("my-plan")
        service.link_plan("my-plan")

        approval = service.approve_plan(approver="lead", notes="ship it")

        assert approval.plan_approved is True
        assert approval.approved_by == "lead"
        assert approval.approval_notes == "ship it"
        status = service.get_status()
        assert status.linked_plans[0].approval_status == "approved"
        assert status.execution.history[-1].action == ExecutionAction.PLAN_APPROVED
        assert service.get_linked_plans().find("my-plan").approval_status == "approved"

    def test_mark_plan_created_satisfies_plan_gate(self, service):
        service.init("my-feature", scale="SMALL")
        service.mark_plan_created("external-plan")
        assert service.check_gates().can_advance is True

    def test_settings_round_trip(self, service):
        service.init("my-feature", scale="MEDIUM")
        settings = service.set_settings(require_approval=False)
        assert settings.require_approval is False
        assert settings.require_plan is True
        assert service.get_settings().require_approval is False


class TestPlans:
    """Plan linking through the façade."""

    def test_link_without_workflow(self, service, write_plan):
        write_plan("my-plan")
        ref = service.link_plan("my-plan")
        assert ref.slug == "my-plan"
        assert not service.exists()

    def test_link_sets_primary_plan_once(self, service, write_plan):
        service.init("my-feature", scale="SMALL")
        write_plan("first")
        write_plan("second", title="Second")
        service.link_plan("first")
        service.link_plan("second")
        status = service.get_status()
        assert status.project.plan == "first"
        assert [p.slug for p in status.linked_plans] == ["first", "second"]
        assert status.approval.plan_created is True

    def test_record_decision_and_progress(self, service, write_plan):
        write_plan("my-plan")
        service.link_plan("my-plan")
        decision = service.record_decision("my-plan", "Use JWT", "Stateless", phase="P")
        assert decision.phase == PhaseCode.P
        assert service.update_plan_step("my-plan", "phase-1", 1, "completed") is True
        assert service.get_plan_progress("my-plan")["overall"] == 100
        assert service.get_plan_execution_status("my-plan").decisions[0].id == "DEC-001"
        assert [p.ref.slug for p in service.get_plans_for_phase("P")] == ["my-plan"]


class TestParticipants:
    """Handoffs, roles, tasks and collaboration."""

    def test_agent_handoff_shows_in_summary(self, service):
        service.init("fix", scale="QUICK")
        result = service.handoff("feature-developer", "test-writer", ["src/auth.ts"])

        summary = service.get_summary()
        assert summary["active_agents"] == ["test-writer"]
        assert summary["handoffs"][0]["artifacts"] == ["src/auth.ts"]
        assert summary["handoffs"][0]["id"] == result.record.id == "HO-001"

    def test_handoff_needs_workflow(self, service):
        with pytest.raises(NoWorkflowError):
            service.handoff("planner", "architect")

    def test_role_lifecycle_and_task(self, service):
        service.init("my-feature", scale="SMALL")
        service.start_role("planner")
        service.update_task("write the prd")

        status = service.get_status()
        assert status.phases[PhaseCode.P].current_task == "write the prd"
        assert status.roles[RoleId.PLANNER].current_task == "write the prd"

        service.complete_role(RoleId.PLANNER, ["prd.md"])
        assert service.get_status().roles[RoleId.PLANNER].status == ActivityStatus.COMPLETED

    def test_unknown_role_rejected(self, service):
        service.init("my-feature", scale="SMALL")
        with pytest.raises(InvalidParamsError):
            service.start_role("wizard")

    def test_collaboration_defaults_to_phase_roles(self, service):
        service.init("my-feature", scale="SMALL")
        session = service.start_collaboration("API design")
        assert session.participants == roles_for_phase(PhaseCode.P)

    def test_collaboration_without_workflow_uses_topic(self, service):
        session = service.start_collaboration("API design")
        assert session.participants == [RoleId.ARCHITECT, RoleId.DEVELOPER, RoleId.DESIGNER]

    def test_collaboration_round_trip(self, service):
        session = service.start_collaboration("storage", participants=["architect", "developer"])
        service.contribute(session.id, "architect", "We decided on Postgres")
        synthesis = service.end_collaboration(session.id)
        assert synthesis.decisions == ["[Architect]: We decided on Postgres"]
        with pytest.raises(CollaborationError):
            service.contribute(session.id, "developer", "late")

    def test_collaboration_needs_topic(self, service):
        with pytest.raises(InvalidParamsError):
            service.start_collaboration(" ")
