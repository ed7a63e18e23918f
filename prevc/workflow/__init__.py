"""PREVC workflow core: phases, roles, scale routing, gates and persisted state.

Example usage:
    from prevc.config import ContextLayout
    from prevc.workflow import StatusStore, create_initial_status, detect_project_scale, ProjectContext

    scale = detect_project_scale(ProjectContext(name="auth", description="fix small bug in auth"))
    store = StatusStore(ContextLayout.for_repo("/path/to/repo"))
    store.save(create_initial_status("auth", scale))
"""

from .collaboration import (
    CollaborationManager,
    CollaborationSession,
    CollaborationSynthesis,
    Contribution,
    SessionStatus,
    select_relevant_roles,
)
from .errors import (
    CollaborationError,
    InvalidParamsError,
    InvalidScaleError,
    NoPlanToApproveError,
    NoWorkflowError,
    PersistenceError,
    PlanNotFoundError,
    WorkflowError,
    WorkflowExistsError,
    WorkflowGateError,
)
from .gates import GateCheckResult, GateEvaluator, GateStatus, default_settings
from .initializer import create_initial_status, migrate_legacy_document
from .phases import PHASES, PhaseDefinition, get_phase_definition, phase_name
from .roles import ROLES, RoleDefinition, get_role_definition, role_display_name
from .scaling import (
    SCALE_ROUTES,
    ProjectContext,
    ScaleRoute,
    detect_project_scale,
    get_scale_route,
    scale_from_name,
)
from .status_models import WorkflowSettings, WorkflowStatus
from .status_store import StatusStore

__all__ = [
    # Phases and roles
    "PHASES",
    "PhaseDefinition",
    "get_phase_definition",
    "phase_name",
    "ROLES",
    "RoleDefinition",
    "get_role_definition",
    "role_display_name",
    # Scale routing
    "SCALE_ROUTES",
    "ScaleRoute",
    "ProjectContext",
    "detect_project_scale",
    "get_scale_route",
    "scale_from_name",
    # Gates
    "GateEvaluator",
    "GateCheckResult",
    "GateStatus",
    "default_settings",
    # State
    "WorkflowStatus",
    "WorkflowSettings",
    "StatusStore",
    "create_initial_status",
    "migrate_legacy_document",
    # Collaboration
    "CollaborationManager",
    "CollaborationSession",
    "CollaborationSynthesis",
    "Contribution",
    "SessionStatus",
    "select_relevant_roles",
    # Errors
    "WorkflowError",
    "NoWorkflowError",
    "InvalidScaleError",
    "InvalidParamsError",
    "PlanNotFoundError",
    "WorkflowGateError",
    "NoPlanToApproveError",
    "WorkflowExistsError",
    "CollaborationError",
    "PersistenceError",
]
