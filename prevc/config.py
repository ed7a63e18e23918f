"""Centralized configuration for the PREVC workflow engine.

This module provides a single source of truth for enums, file layout and
constants shared by the workflow, orchestration, plan and gateway packages.

Design Principles:
- Enums for every persisted status value
- One place that knows where files live under ``.context/``
- No process-wide state: paths are always derived from an explicit repo path
"""

import os
from dataclasses import dataclass
from enum import Enum, IntEnum
from pathlib import Path

# =============================================================================
# Enums for Type Safety
# =============================================================================


class PhaseCode(str, Enum):
    """The five PREVC phases, in workflow order."""

    P = "P"  # Planning
    R = "R"  # Review
    E = "E"  # Execution
    V = "V"  # Validation
    C = "C"  # Confirmation

    @classmethod
    def values(cls) -> list[str]:
        """Return all phase codes as strings."""
        return [phase.value for phase in cls]


# Canonical phase order used for "next phase" and progress calculations.
PHASE_ORDER: tuple[PhaseCode, ...] = tuple(PhaseCode)


class StatusType(str, Enum):
    """Valid status values for workflow phases and plan phases/steps."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid status values as strings."""
        return [status.value for status in cls]


class ActivityStatus(str, Enum):
    """Activity state of a role or agent participating in the workflow."""

    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid activity values as strings."""
        return [status.value for status in cls]


class OutputState(str, Enum):
    """Whether a phase output artifact has been produced."""

    UNFILLED = "unfilled"
    FILLED = "filled"


class PlanStatus(str, Enum):
    """Lifecycle of a linked plan."""

    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


class DecisionStatus(str, Enum):
    """Status of a recorded plan decision."""

    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SUPERSEDED = "superseded"


class ProjectScale(IntEnum):
    """Coarse sizing classification that selects the phase route."""

    QUICK = 0  # Bug fixes, tweaks
    SMALL = 1  # Simple features
    MEDIUM = 2  # Regular features
    LARGE = 3  # Products, multi-module work
    ENTERPRISE = 4  # Systems with compliance requirements

    @classmethod
    def names(cls) -> list[str]:
        """Return all scale names (the persisted form)."""
        return [scale.name for scale in cls]


class RoleId(str, Enum):
    """PREVC roles."""

    PLANNER = "planner"
    DESIGNER = "designer"
    ARCHITECT = "architect"
    DEVELOPER = "developer"
    QA = "qa"
    REVIEWER = "reviewer"
    DOCUMENTER = "documenter"
    SOLO_DEV = "solo-dev"

    @classmethod
    def values(cls) -> list[str]:
        """Return all role ids as strings."""
        return [role.value for role in cls]


class GateType(str, Enum):
    """Named preconditions on phase transitions."""

    PLAN_REQUIRED = "plan_required"
    APPROVAL_REQUIRED = "approval_required"


class ExecutionAction(str, Enum):
    """Actions recorded in the execution history breadcrumb trail."""

    STARTED = "started"
    COMPLETED = "completed"
    PLAN_LINKED = "plan_linked"
    PLAN_APPROVED = "plan_approved"
    PHASE_SKIPPED = "phase_skipped"
    SETTINGS_CHANGED = "settings_changed"
    HANDOFF = "handoff"
    STEP_STARTED = "step_started"
    STEP_COMPLETED = "step_completed"
    STEP_SKIPPED = "step_skipped"


class ErrorKind(str, Enum):
    """Machine-readable error categories surfaced by the gateway."""

    NO_WORKFLOW = "no_workflow"
    INVALID_SCALE = "invalid_scale"
    PLAN_NOT_FOUND = "plan_not_found"
    GATE_BLOCKED = "gate_blocked"
    NO_PLAN = "no_plan"
    WORKFLOW_EXISTS = "workflow_exists"
    COLLABORATION = "collaboration"
    INVALID_PARAMS = "invalid_params"
    PERSISTENCE = "persistence"


# =============================================================================
# File Layout
# =============================================================================

DEFAULT_CONTEXT_DIR_NAME = ".context"
CONTEXT_DIR_ENV_VAR = "PREVC_CONTEXT_DIR"

STATUS_FILE_NAME = "status.yaml"
PLANS_FILE_NAME = "plans.json"
PLAN_TRACKING_DIR_NAME = "plan-tracking"
ARCHIVE_DIR_NAME = "archive"

# Plan slugs name files under plans/ and plan-tracking/: no separators, no leading dot
PLAN_SLUG_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]*$"

# ID prefixes (sequential, zero-padded: HO-001, DEC-001)
HANDOFF_ID_PREFIX = "HO"
DECISION_ID_PREFIX = "DEC"


def context_dir_name() -> str:
    """Return the context directory name, honouring ``PREVC_CONTEXT_DIR``."""
    return os.getenv(CONTEXT_DIR_ENV_VAR, DEFAULT_CONTEXT_DIR_NAME)


@dataclass(frozen=True)
class ContextLayout:
    """Immutable description of where workflow files live for one repository.

    Directory Structure:
        <repo>/
        └── .context/
            ├── plans/
            │   └── <slug>.md
            └── workflow/
                ├── status.yaml
                ├── plans.json
                ├── plan-tracking/
                │   └── <slug>.json
                └── archive/
    """

    repo_path: Path
    context_dir: Path

    @classmethod
    def for_repo(cls, repo_path: str | Path) -> "ContextLayout":
        """Derive the layout from a repository path.

        A path that already points at the context directory is used as-is.

        Args:
            repo_path: Repository root, or the context directory itself

        Returns:
            ContextLayout for the repository
        """
        resolved = Path(repo_path).resolve()
        name = context_dir_name()
        if resolved.name == name:
            return cls(repo_path=resolved.parent, context_dir=resolved)
        return cls(repo_path=resolved, context_dir=resolved / name)

    @property
    def workflow_dir(self) -> Path:
        return self.context_dir / "workflow"

    @property
    def status_file(self) -> Path:
        return self.workflow_dir / STATUS_FILE_NAME

    @property
    def archive_dir(self) -> Path:
        return self.workflow_dir / ARCHIVE_DIR_NAME

    @property
    def plans_dir(self) -> Path:
        return self.context_dir / "plans"

    @property
    def plans_file(self) -> Path:
        return self.workflow_dir / PLANS_FILE_NAME

    @property
    def plan_tracking_dir(self) -> Path:
        return self.workflow_dir / PLAN_TRACKING_DIR_NAME
