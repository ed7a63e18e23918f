"""Plain-text and plain-data renderings of a workflow status.

Pure functions used by ``WorkflowService`` to build summaries, the
human-readable status block and the recommended next actions. Nothing here
reads or writes files.
"""

from typing import Any

from prevc.config import PHASE_ORDER, ActivityStatus, StatusType
from prevc.workflow.phases import get_phase_definition, phase_name_pt
from prevc.workflow.roles import responsibilities_for_role
from prevc.workflow.scaling import scale_display_name
from prevc.workflow.status_models import WorkflowStatus

PHASE_STATUS_EMOJI: dict[StatusType, str] = {
    StatusType.COMPLETED: "✅",
    StatusType.IN_PROGRESS: "🔄",
    StatusType.SKIPPED: "⏭️",
    StatusType.PENDING: "⏸️",
}


def phase_progress(status: WorkflowStatus) -> dict[str, int]:
    """Completed vs. total phases on the route (skipped phases excluded)."""
    active = [status.phases[code] for code in PHASE_ORDER if status.phases[code].status != StatusType.SKIPPED]
    completed = sum(1 for state in active if state.status == StatusType.COMPLETED)
    total = len(active)
    return {
        "completed": completed,
        "total": total,
        "percentage": round(completed / total * 100) if total else 0,
    }


def build_summary(status: WorkflowStatus) -> dict[str, Any]:
    """Build the summary returned by ``get_summary``.

    Args:
        status: Workflow status to summarize.

    Returns:
        Dict with name, scale, current_phase, progress, is_complete,
        started_at, active_roles, active_agents and handoffs.
    """
    return {
        "name": status.project.name,
        "scale": status.project.scale.name,
        "current_phase": status.current_phase.value,
        "progress": phase_progress(status),
        "is_complete": status.is_complete(),
        "started_at": status.project.created_at,
        "active_roles": [
            role.value for role, state in status.roles.items() if state.status == ActivityStatus.ACTIVE
        ],
        "active_agents": [
            name for name, state in status.agents.items() if state.status == ActivityStatus.ACTIVE
        ],
        "handoffs": [record.model_dump(mode="json") for record in status.handoffs],
    }


def format_status(status: WorkflowStatus) -> str:
    """Render the multi-line status block shown to users."""
    progress = phase_progress(status)
    current = status.current_phase
    lines = [
        f"📋 Workflow: {status.project.name}",
        f"📊 Scale: {scale_display_name(status.project.scale)}",
        f"📍 Current Phase: {phase_name_pt(current)} ({current.value})",
        f"📈 Progress: {progress['percentage']}% ({progress['completed']}/{progress['total']} phases)",
        "",
        "Phases:",
    ]
    for code in PHASE_ORDER:
        state = status.phases[code]
        lines.append(
            f"  {PHASE_STATUS_EMOJI[state.status]} {code.value}: {phase_name_pt(code)} - {state.status.value}"
        )

    if status.is_complete():
        lines.extend(["", "✨ Workflow complete!"])

    return "\n".join(lines)


def recommended_actions(status: WorkflowStatus) -> list[str]:
    """Suggested next actions for the current phase.

    The phase task, the first two responsibilities of every role working
    in the phase, then the outputs the phase should produce.
    """
    definition = get_phase_definition(status.current_phase)
    actions = [f"Complete {definition.name} phase tasks"]
    for role in definition.roles:
        actions.extend(responsibilities_for_role(role)[:2])
    if definition.outputs:
        actions.append(f"Create outputs: {', '.join(definition.outputs)}")
    return actions
