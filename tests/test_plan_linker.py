"""Tests for PlanLinker.

Covers:
- Linking plans and plans.json bookkeeping
- Merging tracking into parsed plans
- Idempotent phase and step updates, unknown targets
- Decisions, progress and markdown sync
- Step breadcrumbs in the workflow history
- Archiving and clearing on re-init
"""

import json

import pytest

from prevc.config import (
    ApprovalStatus,
    DecisionStatus,
    ExecutionAction,
    PhaseCode,
    PlanStatus,
    ProjectScale,
    StatusType,
)
from prevc.plans.plan_linker import PlanLinker, is_valid_slug
from prevc.workflow.errors import PersistenceError, PlanNotFoundError
from prevc.workflow.initializer import create_initial_status
from prevc.workflow.status_store import StatusStore


@pytest.fixture
def store(layout):
    return StatusStore(layout)


@pytest.fixture
def linker(layout, store):
    return PlanLinker(layout, store)


@pytest.fixture
def linked(linker, write_plan):
    write_plan("add-login")
    return linker.link_plan("add-login")


class TestLinking:
    """link_plan and plans.json."""

    def test_missing_plan_raises(self, linker):
        with pytest.raises(PlanNotFoundError):
            linker.link_plan("nope")

    def test_link_parses_document(self, linked):
        assert linked.title == "Add Login"
        assert linked.summary == "Let users sign in with email."
        assert linked.path == "plans/add-login.md"
        assert [p.prevc for p in linked.phases] == [PhaseCode.P, PhaseCode.E, PhaseCode.V]

    def test_first_plan_becomes_primary(self, linker, linked, write_plan):
        write_plan("second", title="Second")
        linker.link_plan("second")
        plans = linker.get_linked_plans()
        assert plans.primary == "add-login"
        assert [p.slug for p in plans.active] == ["add-login", "second"]

    def test_relink_replaces_entry(self, linker, linked):
        linker.link_plan("add-login")
        assert [p.slug for p in linker.get_linked_plans().active] == ["add-login"]

    @pytest.mark.parametrize("slug", ["../../README", "nested/plan", ".hidden", "", "add-login\n"])
    def test_unsafe_slug_rejected(self, linker, linked, repo, slug):
        """Slugs that would resolve outside plans/ never reach the filesystem."""
        readme = repo / "README.md"
        readme.write_text("# Readme\n", encoding="utf-8")
        with pytest.raises(PlanNotFoundError):
            linker.link_plan(slug)
        assert readme.read_text(encoding="utf-8") == "# Readme\n"
        assert [p.slug for p in linker.get_linked_plans().active] == ["add-login"]

    def test_unsafe_slug_never_names_files(self, linker, layout):
        with pytest.raises(PlanNotFoundError):
            linker.sync_plan_markdown("../../README")
        with pytest.raises(PlanNotFoundError):
            linker.tracking_path("../README")
        assert not (layout.workflow_dir / "README.json").exists()

    def test_is_valid_slug(self):
        assert is_valid_slug("add-login") is True
        assert is_valid_slug("v1.2_fix") is True
        assert is_valid_slug("../x") is False
        assert is_valid_slug("a/b") is False

    def test_no_plans_file(self, linker):
        assert linker.get_linked_plans().active == []

    def test_corrupt_plans_file(self, linker, layout):
        layout.plans_file.parent.mkdir(parents=True, exist_ok=True)
        layout.plans_file.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError):
            linker.get_linked_plans()

    def test_mark_plan_approved(self, linker, linked):
        assert linker.mark_plan_approved("add-login", "reviewer", "2026-01-01T00:00:00Z") is True
        ref = linker.get_linked_plans().find("add-login")
        assert ref.approval_status == "approved"
        assert ref.approved_by == "reviewer"
        assert linker.mark_plan_approved("nope", "reviewer", "t") is False

    def test_plan_statuses_are_enums(self, linker, linked):
        ref = linker.get_linked_plans().find("add-login")
        assert ref.status is PlanStatus.ACTIVE
        assert ref.approval_status is ApprovalStatus.PENDING

    def test_unknown_plan_status_is_corrupt(self, linker, linked, layout):
        data = json.loads(layout.plans_file.read_text(encoding="utf-8"))
        data["active"][0]["status"] = "archived"
        layout.plans_file.write_text(json.dumps(data), encoding="utf-8")
        with pytest.raises(PersistenceError):
            linker.get_linked_plans()


class TestLinkedPlan:
    """Reading linked plans."""

    def test_unlinked_slug(self, linker):
        assert linker.get_linked_plan("nope") is None

    def test_removed_document(self, linker, linked, repo):
        (repo / ".context" / "plans" / "add-login.md").unlink()
        assert linker.get_linked_plan("add-login") is None

    def test_untracked_plan(self, linker, linked):
        plan = linker.get_linked_plan("add-login")
        assert plan.progress == 0
        assert plan.current_phase is None
        assert len(plan.find_phase("phase-1").steps) == 2

    def test_plans_for_phase(self, linker, linked):
        assert [p.ref.slug for p in linker.get_plans_for_phase(PhaseCode.E)] == ["add-login"]
        assert linker.get_plans_for_phase(PhaseCode.R) == []

    def test_pending_work(self, linker, linked):
        plan = linker.get_linked_plan("add-login")
        assert linker.has_pending_work_for_phase(plan, PhaseCode.P) is True
        assert linker.has_pending_work_for_phase(plan, PhaseCode.C) is False


class TestPhaseUpdates:
    """update_plan_phase."""

    def test_unknown_targets(self, linker, linked):
        assert linker.update_plan_phase("nope", "phase-1", StatusType.COMPLETED) is False
        assert linker.update_plan_phase("add-login", "phase-9", StatusType.COMPLETED) is False
        assert linker.get_execution_status("add-login") is None

    def test_phase_progress_without_steps(self, linker, linked):
        assert linker.update_plan_phase("add-login", "phase-2", StatusType.COMPLETED) is True
        tracking = linker.get_execution_status("add-login")
        assert tracking.progress == 33
        assert tracking.phases["phase-2"].completed_at is not None

        plan = linker.get_linked_plan("add-login")
        assert plan.find_phase("phase-2").status == StatusType.COMPLETED
        progress = linker.get_plan_progress("add-login")
        assert progress["overall"] == 33
        assert progress["by_phase"]["E"] == {"total": 1, "completed": 1, "percentage": 100}
        assert progress["by_phase"]["R"] == {"total": 0, "completed": 0, "percentage": 0}

    def test_repeated_update_writes_nothing(self, linker, linked):
        linker.update_plan_phase("add-login", "phase-1", StatusType.IN_PROGRESS)
        before = linker.tracking_path("add-login").read_text(encoding="utf-8")
        assert linker.update_plan_phase("add-login", "phase-1", StatusType.IN_PROGRESS) is True
        assert linker.tracking_path("add-login").read_text(encoding="utf-8") == before

    def test_current_phase_reflects_tracking(self, linker, linked):
        linker.update_plan_phase("add-login", "phase-1", StatusType.IN_PROGRESS)
        assert linker.get_linked_plan("add-login").current_phase == "phase-1"

    def test_unknown_plan_progress(self, linker):
        assert linker.get_plan_progress("nope") == {"overall": 0, "by_phase": {}}


class TestStepUpdates:
    """update_plan_step."""

    def test_unknown_targets(self, linker, linked):
        assert linker.update_plan_step("nope", "phase-1", 1, StatusType.COMPLETED) is False
        assert linker.update_plan_step("add-login", "phase-9", 1, StatusType.COMPLETED) is False
        assert linker.update_plan_step("add-login", "phase-1", 9, StatusType.COMPLETED) is False
        assert linker.update_plan_step("add-login", "phase-1", 0, StatusType.COMPLETED) is False

    def test_step_start_marks_phase_in_progress(self, linker, linked):
        assert linker.update_plan_step("add-login", "phase-1", 1, StatusType.IN_PROGRESS) is True
        phase = linker.get_execution_status("add-login").phases["phase-1"]
        assert phase.status == StatusType.IN_PROGRESS
        assert phase.steps[0].description == "Interview stakeholders"
        assert phase.steps[0].started_at is not None

    def test_all_steps_complete_phase(self, linker, linked):
        linker.update_plan_step("add-login", "phase-1", 1, StatusType.COMPLETED, output="notes.md")
        linker.update_plan_step("add-login", "phase-1", 2, StatusType.COMPLETED)
        tracking = linker.get_execution_status("add-login")
        assert tracking.phases["phase-1"].status == StatusType.COMPLETED
        assert tracking.progress == 100
        assert tracking.phases["phase-1"].steps[0].output == "notes.md"

    def test_repeated_step_update_writes_nothing(self, linker, linked):
        linker.update_plan_step("add-login", "phase-1", 1, StatusType.COMPLETED)
        before = linker.tracking_path("add-login").read_text(encoding="utf-8")
        assert linker.update_plan_step("add-login", "phase-1", 1, StatusType.COMPLETED) is True
        assert linker.tracking_path("add-login").read_text(encoding="utf-8") == before

    def test_step_update_syncs_markdown(self, linker, linked, repo):
        linker.update_plan_step("add-login", "phase-1", 1, StatusType.COMPLETED)
        content = (repo / ".context" / "plans" / "add-login.md").read_text(encoding="utf-8")
        assert "1. [x] Interview stakeholders *(completed: " in content
        assert "## Execution History" in content
        assert "progress: 100" in content

    def test_breadcrumb_recorded_when_workflow_exists(self, linker, linked, store):
        store.save(create_initial_status("demo", ProjectScale.SMALL))
        linker.update_plan_step("add-login", "phase-1", 1, StatusType.COMPLETED, notes="done")

        execution = store.load().execution
        entry = execution.history[-1]
        assert entry.action == ExecutionAction.STEP_COMPLETED
        assert entry.plan == "add-login"
        assert entry.plan_phase == "phase-1"
        assert entry.notes == "done"
        assert execution.resume_context == "Completed phase-1 step 1 (Interview stakeholders) in Planning"

    def test_no_breadcrumb_for_pending(self, linker, linked, store):
        store.save(create_initial_status("demo", ProjectScale.SMALL))
        before = len(store.load().execution.history)
        linker.update_plan_step("add-login", "phase-1", 1, StatusType.PENDING)
        assert len(store.load().execution.history) == before


class TestDecisions:
    """record_decision."""

    def test_sequential_ids(self, linker, linked):
        first = linker.record_decision("add-login", "Use JWT", "Stateless sessions", phase=PhaseCode.P)
        second = linker.record_decision("add-login", "Use Postgres", "Existing infra", alternatives=["MySQL"])
        assert (first.id, second.id) == ("DEC-001", "DEC-002")
        assert first.status is DecisionStatus.ACCEPTED
        assert [d.title for d in linker.get_linked_plan("add-login").decisions] == ["Use JWT", "Use Postgres"]

    def test_unlinked_plan_rejected(self, linker):
        with pytest.raises(PlanNotFoundError):
            linker.record_decision("nope", "t", "d")


class TestSyncAndReinit:
    """sync_plan_markdown, archive_plans and clear_all_plans."""

    def test_sync_without_tracking(self, linker, linked):
        assert linker.sync_plan_markdown("add-login") is False

    def test_sync_with_tracking(self, linker, linked):
        linker.update_plan_phase("add-login", "phase-1", StatusType.IN_PROGRESS)
        assert linker.sync_plan_markdown("add-login") is True

    def test_tracking_file_is_json(self, linker, linked):
        linker.update_plan_phase("add-login", "phase-1", StatusType.IN_PROGRESS)
        data = json.loads(linker.tracking_path("add-login").read_text(encoding="utf-8"))
        assert data["plan_slug"] == "add-login"
        assert data["phases"]["phase-1"]["status"] == "in_progress"

    def test_archive_plans(self, linker, linked, layout):
        linker.update_plan_phase("add-login", "phase-1", StatusType.IN_PROGRESS)
        archive_dir = linker.archive_plans()
        assert (archive_dir / "plans.json").exists()
        assert (archive_dir / "plan-tracking" / "add-login.json").exists()
        assert not layout.plans_file.exists()
        assert linker.archive_plans() is None

    def test_clear_all_plans(self, linker, linked, layout):
        linker.update_plan_phase("add-login", "phase-1", StatusType.IN_PROGRESS)
        linker.clear_all_plans()
        assert not layout.plans_file.exists()
        assert not layout.plan_tracking_dir.exists()
        assert (layout.plans_dir / "add-login.md").exists()
