"""WorkflowService façade and status formatting."""

from .formatting import build_summary, format_status, phase_progress, recommended_actions
from .workflow_service import WorkflowService

__all__ = [
    "WorkflowService",
    "build_summary",
    "format_status",
    "phase_progress",
    "recommended_actions",
]
