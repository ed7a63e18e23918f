"""Error taxonomy for the PREVC workflow engine.

Every error carries an ``ErrorKind`` so the gateway can turn it into a
machine-readable envelope, and an optional ``hint`` describing how to
recover. ``PersistenceError`` is the only kind that must never be turned
into a soft failure.
"""

from typing import ClassVar

from prevc.config import ErrorKind, GateType, PhaseCode


class WorkflowError(Exception):
    """Base class for all workflow errors."""

    kind: ClassVar[ErrorKind]

    def __init__(self, message: str, hint: str = ""):
        super().__init__(message)
        self.message = message
        self.hint = hint


class NoWorkflowError(WorkflowError):
    """An operation was attempted before ``init``."""

    kind = ErrorKind.NO_WORKFLOW

    def __init__(
        self,
        message: str = "No workflow found. Initialize a workflow first.",
        hint: str = 'Use init(name="feature-name") to start a workflow.',
    ):
        super().__init__(message, hint)


class InvalidScaleError(WorkflowError, ValueError):
    """A scale token does not name a ProjectScale."""

    kind = ErrorKind.INVALID_SCALE

    def __init__(self, token: object):
        super().__init__(
            f"Invalid scale: {token!r}",
            hint="Use one of QUICK, SMALL, MEDIUM, LARGE, ENTERPRISE.",
        )
        self.token = token


class PlanNotFoundError(WorkflowError):
    """A plan slug does not match a scaffolded (or linked) plan."""

    kind = ErrorKind.PLAN_NOT_FOUND

    def __init__(self, slug: str, message: str | None = None):
        super().__init__(
            message or f"Plan not found: {slug}",
            hint="Scaffold the plan under .context/plans/ and link it with linkPlan.",
        )
        self.slug = slug


class WorkflowGateError(WorkflowError):
    """A phase transition was blocked by a gate."""

    kind = ErrorKind.GATE_BLOCKED

    def __init__(
        self,
        message: str,
        gate: GateType,
        from_phase: PhaseCode,
        to_phase: PhaseCode,
        hint: str,
    ):
        super().__init__(message, hint)
        self.gate = gate
        self.from_phase = from_phase
        self.to_phase = to_phase

    @property
    def transition(self) -> str:
        """Transition label, e.g. ``P→R``."""
        return f"{self.from_phase.value}→{self.to_phase.value}"


class NoPlanToApproveError(WorkflowError):
    """Plan approval was requested while no plan is linked."""

    kind = ErrorKind.NO_PLAN

    def __init__(
        self,
        message: str = "No plan is linked to approve. Link a plan first using linkPlan.",
    ):
        super().__init__(
            message,
            hint="Scaffold a plan, then link it with linkPlan before approving.",
        )


class WorkflowExistsError(WorkflowError):
    """``init`` was called while a workflow exists and no archive choice was made."""

    kind = ErrorKind.WORKFLOW_EXISTS

    def __init__(self):
        super().__init__(
            "A workflow already exists. Use archive_previous=True to archive "
            "or archive_previous=False to delete the existing workflow.",
            hint="Pass archive_previous explicitly to replace the current workflow.",
        )


class CollaborationError(WorkflowError):
    """Invalid collaboration session access."""

    kind = ErrorKind.COLLABORATION


class PersistenceError(WorkflowError):
    """A persisted workflow document is unreadable or corrupt.

    Always propagates; the gateway never converts it into an envelope.
    """

    kind = ErrorKind.PERSISTENCE

    def __init__(self, message: str, path: str = ""):
        super().__init__(message, hint="Inspect or restore the file by hand.")
        self.path = path


class InvalidParamsError(WorkflowError, ValueError):
    """An operation received missing or malformed arguments."""

    kind = ErrorKind.INVALID_PARAMS
