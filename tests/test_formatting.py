"""Tests for status rendering helpers.

Covers:
- Phase progress excludes skipped phases
- The formatted status block
- Recommended actions per phase
"""

from prevc.config import PhaseCode, ProjectScale
from prevc.service.formatting import build_summary, format_status, phase_progress, recommended_actions
from prevc.workflow.initializer import create_initial_status


class TestPhaseProgress:
    """Progress over route phases."""

    def test_skipped_phases_excluded(self):
        status = create_initial_status("demo", ProjectScale.QUICK)
        assert phase_progress(status) == {"completed": 0, "total": 2, "percentage": 0}

    def test_rounding(self):
        status = create_initial_status("demo", ProjectScale.SMALL)
        status.complete_phase(PhaseCode.P)
        status.transition_to(PhaseCode.E)
        assert phase_progress(status) == {"completed": 1, "total": 3, "percentage": 33}


class TestFormatStatus:
    """The human-readable block."""

    def test_quick_workflow(self):
        status = create_initial_status("demo", ProjectScale.QUICK)
        assert format_status(status).split("\n") == [
            "📋 Workflow: demo",
            "📊 Scale: Quick",
            "📍 Current Phase: Execução (E)",
            "📈 Progress: 0% (0/2 phases)",
            "",
            "Phases:",
            "  ⏭️ P: Planejamento - skipped",
            "  ⏭️ R: Revisão - skipped",
            "  🔄 E: Execução - in_progress",
            "  ⏸️ V: Validação - pending",
            "  ⏭️ C: Confirmação - skipped",
        ]

    def test_complete_workflow(self):
        status = create_initial_status("demo", ProjectScale.QUICK)
        status.complete_phase(PhaseCode.E)
        status.transition_to(PhaseCode.V)
        status.complete_phase(PhaseCode.V)
        text = format_status(status)
        assert "📈 Progress: 100% (2/2 phases)" in text
        assert text.endswith("\n\n✨ Workflow complete!")


class TestRecommendedActions:
    """Next-step suggestions."""

    def test_planning(self):
        status = create_initial_status("demo", ProjectScale.SMALL)
        assert recommended_actions(status) == [
            "Complete Planning phase tasks",
            "Conduct discovery and requirements gathering",
            "Create specifications and project scope",
            "Create wireframes and prototypes",
            "Define design system and components",
            "Create outputs: prd, tech-spec, requirements, wireframes",
        ]

    def test_execution(self):
        status = create_initial_status("demo", ProjectScale.QUICK)
        assert recommended_actions(status) == [
            "Complete Execution phase tasks",
            "Implement code according to specifications",
            "Follow defined patterns and architecture",
            "Create outputs: code, unit-tests",
        ]


class TestBuildSummary:
    def test_started_at_is_creation_time(self):
        status = create_initial_status("demo", ProjectScale.MEDIUM)
        summary = build_summary(status)
        assert summary["started_at"] == status.project.created_at
        assert summary["active_roles"] == []
        assert summary["handoffs"] == []
