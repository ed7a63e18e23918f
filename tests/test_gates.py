"""Tests for the phase transition gates.

Covers:
- plan_required blocks leaving Planning without a linked plan
- approval_required blocks entering Execution from Planning or Review
- Autonomous mode and force bypass every gate
- check() never mutates the status
"""

import pytest

from prevc.config import GateType, PhaseCode, ProjectScale
from prevc.workflow.errors import WorkflowGateError
from prevc.workflow.gates import DEFAULT_SETTINGS, GateEvaluator, default_settings
from prevc.workflow.initializer import create_initial_status


@pytest.fixture
def gates():
    return GateEvaluator()


def _status(scale: ProjectScale, **settings):
    return create_initial_status("demo", scale, settings=default_settings(scale, **settings))


class TestDefaultSettings:
    """Scale defaults and explicit overrides."""

    def test_quick_is_autonomous(self):
        assert DEFAULT_SETTINGS[ProjectScale.QUICK].autonomous_mode is True

    def test_small_requires_plan_not_approval(self):
        settings = DEFAULT_SETTINGS[ProjectScale.SMALL]
        assert settings.require_plan is True
        assert settings.require_approval is False

    def test_overrides_win(self):
        settings = default_settings(ProjectScale.MEDIUM, require_approval=False)
        assert settings.require_approval is False
        assert settings.require_plan is True

    def test_defaults_are_copies(self):
        """Mutating returned settings never changes the defaults table."""
        settings = default_settings(ProjectScale.MEDIUM)
        settings.autonomous_mode = True
        assert DEFAULT_SETTINGS[ProjectScale.MEDIUM].autonomous_mode is False


class TestPlanGate:
    """plan_required gate."""

    def test_small_planning_without_plan_is_blocked(self, gates):
        """SMALL P→E is blocked by plan_required, not approval."""
        result = gates.check(_status(ProjectScale.SMALL))
        assert result.can_advance is False
        assert result.blocking_gate == GateType.PLAN_REQUIRED
        assert result.transition == "P→E"
        assert result.hint == GateEvaluator.PLAN_HINT

    def test_small_planning_with_plan_passes(self, gates):
        status = _status(ProjectScale.SMALL)
        status.approval.plan_created = True
        assert gates.check(status).can_advance is True

    def test_medium_planning_without_plan_is_blocked(self, gates):
        result = gates.check(_status(ProjectScale.MEDIUM))
        assert result.blocking_gate == GateType.PLAN_REQUIRED
        assert result.transition == "P→R"

    def test_plan_gate_only_applies_in_planning(self, gates):
        status = _status(ProjectScale.LARGE, require_approval=False)
        status.project.current_phase = PhaseCode.E
        assert gates.check(status).can_advance is True


class TestApprovalGate:
    """approval_required gate."""

    def test_medium_planning_to_review_ignores_approval(self, gates):
        status = _status(ProjectScale.MEDIUM)
        status.project.plan = "add-login"
        assert gates.check(status).can_advance is True

    def test_review_to_execution_requires_approval(self, gates):
        status = _status(ProjectScale.MEDIUM)
        status.project.plan = "add-login"
        status.project.current_phase = PhaseCode.R
        result = gates.check(status)
        assert result.can_advance is False
        assert result.blocking_gate == GateType.APPROVAL_REQUIRED
        assert result.transition == "R→E"
        assert "approved" in result.blocking_reason

    def test_required_only_for_the_guarded_transition(self, gates):
        """A gate reports required=True only on the transition it guards."""
        planning = gates.check(_status(ProjectScale.MEDIUM))
        assert planning.gates[GateType.PLAN_REQUIRED].required is True
        assert planning.gates[GateType.APPROVAL_REQUIRED].required is False

        status = _status(ProjectScale.MEDIUM)
        status.project.plan = "add-login"
        status.project.current_phase = PhaseCode.R
        review = gates.check(status)
        assert review.gates[GateType.PLAN_REQUIRED].required is False
        assert review.gates[GateType.APPROVAL_REQUIRED].required is True

    def test_approved_plan_opens_execution(self, gates):
        status = _status(ProjectScale.MEDIUM)
        status.project.plan = "add-login"
        status.project.current_phase = PhaseCode.R
        status.approval.plan_created = True
        status.approval.plan_approved = True
        assert gates.check(status).can_advance is True

    def test_small_with_approval_checks_both_gates(self, gates):
        """SMALL P→E with require_approval needs a plan and an approval."""
        status = _status(ProjectScale.SMALL, require_approval=True)
        status.approval.plan_created = True
        result = gates.check(status)
        assert result.blocking_gate == GateType.APPROVAL_REQUIRED


class TestBypass:
    """Autonomous mode, force and enforce()."""

    def test_autonomous_passes_everything(self, gates):
        result = gates.check(_status(ProjectScale.MEDIUM, autonomous=True))
        assert result.can_advance is True
        assert all(gate.passed and not gate.required for gate in result.gates.values())

    def test_enforce_raises_gate_error(self, gates):
        with pytest.raises(WorkflowGateError) as exc_info:
            gates.enforce(_status(ProjectScale.SMALL), PhaseCode.E)
        error = exc_info.value
        assert error.gate == GateType.PLAN_REQUIRED
        assert error.transition == "P→E"

    def test_enforce_with_force_does_not_raise(self, gates):
        gates.enforce(_status(ProjectScale.SMALL), PhaseCode.E, force=True)

    def test_check_is_read_only(self, gates):
        status = _status(ProjectScale.MEDIUM)
        before = status.model_dump()
        gates.check(status)
        assert status.model_dump() == before

    def test_to_dict_shape(self, gates):
        data = gates.check(_status(ProjectScale.SMALL)).to_dict()
        assert data["canAdvance"] is False
        assert data["blockingGate"] == "plan_required"
        assert set(data["gates"]) == {"plan_required", "approval_required"}

    def test_to_error_rejects_open_transition(self, gates):
        result = gates.check(_status(ProjectScale.QUICK))
        with pytest.raises(ValueError):
            result.to_error()
