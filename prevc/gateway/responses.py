"""Response envelopes returned by the gateway.

Every response is a plain dict with a boolean ``success``. Failures carry
``errorKind`` so callers can branch without parsing messages.
"""

from pathlib import Path
from typing import Any

from prevc.config import ErrorKind, GateType
from prevc.workflow.errors import NoWorkflowError, WorkflowError, WorkflowGateError

INIT_SUGGESTION = 'Use init({"name": "feature-name"}) to start a workflow.'

GATE_RESOLUTIONS: dict[GateType, str] = {
    GateType.PLAN_REQUIRED: 'Create and link a plan: link_plan({"plan_slug": "plan-name"})',
    GateType.APPROVAL_REQUIRED: 'Approve the plan: approve_plan({"plan_slug": "plan-name"})',
}
GATE_ALTERNATIVE = 'Use advance({"force": true}) to bypass the gate once'
GATE_AUTONOMOUS = 'Or use set_autonomous({"enabled": true}) to bypass all gates'


def success_response(**fields: Any) -> dict[str, Any]:
    return {"success": True, **fields}


def failure_response(error: str, kind: ErrorKind | None = None, **fields: Any) -> dict[str, Any]:
    """A ``success: false`` envelope; None-valued extras are dropped."""
    response: dict[str, Any] = {"success": False, "error": error}
    if kind is not None:
        response["errorKind"] = kind.value
    response.update({key: value for key, value in fields.items() if value is not None})
    return response


def error_response(error: WorkflowError) -> dict[str, Any]:
    return failure_response(error.message, error.kind, hint=error.hint or None)


def invalid_params_response(message: str) -> dict[str, Any]:
    return failure_response(message, ErrorKind.INVALID_PARAMS)


def no_workflow_response(error: NoWorkflowError, status_file: Path) -> dict[str, Any]:
    return failure_response(
        error.message,
        error.kind,
        suggestion=INIT_SUGGESTION,
        statusFilePath=str(status_file),
    )


def gate_error_response(error: WorkflowGateError) -> dict[str, Any]:
    """Envelope for a blocked advance, with every way out spelled out."""
    return failure_response(
        error.message,
        error.kind,
        gate=error.gate.value,
        transition=error.transition,
        hint=error.hint,
        resolution=GATE_RESOLUTIONS[error.gate],
        alternative=GATE_ALTERNATIVE,
        autonomousMode=GATE_AUTONOMOUS,
    )


def format_validation_errors(errors: list[dict[str, Any]]) -> str:
    """One-line summary of pydantic validation errors."""
    parts = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ())) or "params"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "Invalid parameters: " + "; ".join(parts)
