"""Plan linking, execution tracking and markdown sync."""

from .markdown import parse_phases, sync_markdown
from .models import (
    LinkedPlan,
    PlanDecision,
    PlanExecutionTracking,
    PlanPhase,
    PlanPhaseTracking,
    PlanStep,
    StepExecution,
    WorkflowPlans,
)
from .plan_linker import PlanLinker, calculate_progress

__all__ = [
    "PlanLinker",
    "calculate_progress",
    "parse_phases",
    "sync_markdown",
    "LinkedPlan",
    "PlanDecision",
    "PlanExecutionTracking",
    "PlanPhase",
    "PlanPhaseTracking",
    "PlanStep",
    "StepExecution",
    "WorkflowPlans",
]
