"""Workflow status construction and legacy migration.

``create_initial_status`` builds the document written by ``init``;
``migrate_legacy_document`` fills in the sections that older status files
were written without (settings, approval, execution history) and moves
fields older writers stored elsewhere (``project.started``,
``project.settings``, ``pending`` roles) to their current form.
"""

import logging
from typing import Any

from prevc.config import (
    PHASE_ORDER,
    ActivityStatus,
    ExecutionAction,
    PhaseCode,
    PlanStatus,
    ProjectScale,
    RoleId,
    StatusType,
)
from prevc.workflow.gates import default_settings
from prevc.workflow.scaling import phases_for_scale, roles_for_scale, scale_from_name
from prevc.workflow.status_models import (
    ApprovalRecord,
    ExecutionEntry,
    ExecutionHistory,
    PhaseState,
    ProjectMetadata,
    RoleState,
    WorkflowSettings,
    WorkflowStatus,
    resume_context,
    utc_now,
)

logger = logging.getLogger(__name__)

MIGRATION_APPROVER = "system-migration"


def create_initial_status(
    name: str,
    scale: ProjectScale,
    description: str | None = None,
    settings: WorkflowSettings | None = None,
) -> WorkflowStatus:
    """Build a fresh status for a new workflow.

    Phases off the scale route are skipped with a reason; the first route
    phase is started.

    Args:
        name: Workflow name
        scale: Resolved scale
        description: Optional free-text description
        settings: Gate settings, defaulting from the scale

    Returns:
        The new WorkflowStatus (not yet persisted)
    """
    now = utc_now()
    route = phases_for_scale(scale)
    first = route[0]

    phases: dict[PhaseCode, PhaseState] = {}
    for code in PHASE_ORDER:
        if code not in route:
            phases[code] = PhaseState(status=StatusType.SKIPPED, reason=f"Not required for scale {scale.name}")
        elif code == first:
            phases[code] = PhaseState(status=StatusType.IN_PROGRESS, started_at=now)
        else:
            phases[code] = PhaseState()

    status = WorkflowStatus(
        project=ProjectMetadata(
            name=name,
            description=description,
            scale=scale,
            current_phase=first,
            created_at=now,
        ),
        phases=phases,
        roles={role: RoleState() for role in roles_for_scale(scale)},
        settings=settings or default_settings(scale),
    )
    status.record(ExecutionAction.STARTED, first)
    return status


# =============================================================================
# Legacy Migration
# =============================================================================

# Keys older writers kept under ``project`` instead of at the top level
LEGACY_PROJECT_KEYS = ("started", "settings", "plans")

# Role and agent states were once written with phase status values
LEGACY_ACTIVITY: dict[str, ActivityStatus] = {
    StatusType.PENDING.value: ActivityStatus.IDLE,
    StatusType.IN_PROGRESS.value: ActivityStatus.ACTIVE,
    StatusType.SKIPPED.value: ActivityStatus.IDLE,
    "paused": ActivityStatus.IDLE,
}

# Role ids written by Portuguese-language versions
LEGACY_ROLE_IDS: dict[str, RoleId] = {
    "planejador": RoleId.PLANNER,
    "arquiteto": RoleId.ARCHITECT,
    "desenvolvedor": RoleId.DEVELOPER,
    "revisor": RoleId.REVIEWER,
    "documentador": RoleId.DOCUMENTER,
}


def _mapping(value: Any, where: str) -> dict[str, Any]:
    """A YAML section as a dict; None reads as empty, scalars are corrupt."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{where} must be a mapping, got {type(value).__name__}")
    return value


def _activity_states(data: dict[str, Any]) -> list[dict[str, Any]]:
    states = []
    for section in ("roles", "agents"):
        for key, state in _mapping(data.get(section), section).items():
            states.append(_mapping(state, f"{section}.{key}"))
    return states


def needs_migration(data: dict[str, Any]) -> bool:
    if not all(key in data for key in ("settings", "approval", "execution")):
        return True
    project = data.get("project")
    if isinstance(project, dict) and any(key in project for key in LEGACY_PROJECT_KEYS):
        return True
    if any(key in LEGACY_ROLE_IDS for key in _mapping(data.get("roles"), "roles")):
        return True
    return any(state.get("status") in LEGACY_ACTIVITY for state in _activity_states(data))


def migrate_legacy_document(data: dict[str, Any]) -> dict[str, Any]:
    """Bring a document written by an older version up to the current schema.

    Operates on the raw mapping before validation. Handles two older shapes:
    documents without settings, approval or execution sections, and
    documents that kept ``started``, ``settings`` and ``plans`` under
    ``project`` and recorded roles as ``pending``.

    Args:
        data: Raw status mapping read from YAML

    Returns:
        The same mapping, upgraded in place

    Raises:
        ValueError: If a section that must be a mapping is a scalar or list
    """
    project = _mapping(data.get("project"), "project")
    phases = _mapping(data.get("phases"), "phases")
    for code, state in phases.items():
        _mapping(state, f"phases.{code}")
    logger.info(f"Migrating legacy workflow status for '{project.get('name', '')}'")

    scale = scale_from_name(project.get("scale", ProjectScale.MEDIUM.name))
    current = str(project.get("current_phase", PhaseCode.P.value))
    _migrate_project(data, project)

    roles = _mapping(data.get("roles"), "roles")
    if any(key in LEGACY_ROLE_IDS for key in roles):
        data["roles"] = {
            LEGACY_ROLE_IDS[key].value if key in LEGACY_ROLE_IDS else key: state for key, state in roles.items()
        }

    for state in _activity_states(data):
        legacy = state.get("status")
        if legacy in LEGACY_ACTIVITY:
            state["status"] = LEGACY_ACTIVITY[legacy].value

    if "settings" not in data:
        data["settings"] = default_settings(scale).model_dump(mode="json")

    if "approval" not in data:
        has_plan = bool(project.get("plan") or data.get("linked_plans"))
        review_done = (phases.get(PhaseCode.R.value) or {}).get("status") == StatusType.COMPLETED.value
        past_review = current in (PhaseCode.E.value, PhaseCode.V.value, PhaseCode.C.value) or review_done
        approved = has_plan and past_review
        approval = ApprovalRecord(plan_created=has_plan, plan_approved=approved)
        if approved:
            approval.approved_by = MIGRATION_APPROVER
            approval.approved_at = utc_now()
        data["approval"] = approval.model_dump(mode="json", exclude_none=True)

    if "execution" not in data:
        data["execution"] = _rebuild_execution(phases, current).model_dump(mode="json", exclude_none=True)

    return data


def _migrate_project(data: dict[str, Any], project: dict[str, Any]) -> None:
    """Move ``project.started``/``settings``/``plans`` to their current homes."""
    started = project.pop("started", None)
    if started and "created_at" not in project:
        project["created_at"] = str(started)

    settings = project.pop("settings", None)
    if settings is not None and "settings" not in data:
        data["settings"] = _mapping(settings, "project.settings")

    plans = project.pop("plans", None) or []
    if not isinstance(plans, list):
        raise ValueError("project.plans must be a list")
    if plans and "linked_plans" not in data:
        refs = []
        for plan in plans:
            plan = _mapping(plan, "project.plans[]")
            slug = str(plan.get("slug", ""))
            refs.append(
                {
                    "slug": slug,
                    "path": plan.get("path") or f"plans/{slug}.md",
                    "title": plan.get("title") or slug,
                    "status": plan.get("status", PlanStatus.ACTIVE.value),
                }
            )
        data["linked_plans"] = refs


def _rebuild_execution(phases: dict[str, Any], current: str) -> ExecutionHistory:
    """Reconstruct history entries from phase timestamps."""
    history: list[ExecutionEntry] = []
    for code in PHASE_ORDER:
        state = phases.get(code.value) or {}
        if state.get("started_at"):
            history.append(
                ExecutionEntry(timestamp=str(state["started_at"]), phase=code, action=ExecutionAction.STARTED)
            )
        if state.get("completed_at"):
            history.append(
                ExecutionEntry(timestamp=str(state["completed_at"]), phase=code, action=ExecutionAction.COMPLETED)
            )
    history.sort(key=lambda entry: entry.timestamp)

    execution = ExecutionHistory(history=history)
    if history:
        last = history[-1]
        execution.last_activity = last.timestamp
        execution.resume_context = resume_context(last.phase, last.action)
    else:
        execution.last_activity = utc_now()
        execution.resume_context = resume_context(PhaseCode(current), ExecutionAction.STARTED)
    return execution
