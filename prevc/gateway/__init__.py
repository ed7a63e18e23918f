"""Agent-facing gateway: closed operation set, params models and envelopes."""

from .handlers import WorkflowGateway
from .operations import PARAMS_MODELS, Operation
from .responses import (
    error_response,
    failure_response,
    gate_error_response,
    invalid_params_response,
    no_workflow_response,
    success_response,
)

__all__ = [
    "WorkflowGateway",
    "Operation",
    "PARAMS_MODELS",
    "success_response",
    "failure_response",
    "error_response",
    "invalid_params_response",
    "no_workflow_response",
    "gate_error_response",
]
