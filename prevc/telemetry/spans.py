"""Spans for workflow operations and phase transitions.

Span Hierarchy:
    workflow_span (one per service operation)
    └── phase_span (per phase transition during advance)

Without an initialised TracerProvider the OpenTelemetry API hands out
no-op spans, so these helpers are always safe to call.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Span, StatusCode, Tracer

logger = logging.getLogger(__name__)

TRACER_NAME = "prevc.workflow"


def get_tracer() -> Tracer:
    """Get the tracer for workflow spans.

    Resolved on every call so a provider installed after import is used.
    """
    return trace.get_tracer(TRACER_NAME)


@contextmanager
def _traced(name: str, attributes: dict[str, Any]) -> Generator[Span, None, None]:
    with get_tracer().start_as_current_span(name=name, attributes=attributes) as span:
        try:
            yield span
            span.set_status(StatusCode.OK)
        except Exception as e:
            record_error(span, e)
            raise


@contextmanager
def workflow_span(
    operation: str,
    repo_path: str | None = None,
    workflow_name: str | None = None,
    **attributes: Any,
) -> Generator[Span, None, None]:
    """Create a span for one workflow operation.

    Args:
        operation: Operation name (e.g., "advance")
        repo_path: Repository the operation runs against
        workflow_name: Workflow name, when known
        **attributes: Additional span attributes

    Yields:
        The OpenTelemetry span

    Example:
        with workflow_span("advance", repo_path="/repo") as span:
            span.set_attribute("workflow.force", True)
    """
    span_attributes: dict[str, Any] = {"workflow.operation": operation}
    if repo_path:
        span_attributes["workflow.repo_path"] = repo_path
    if workflow_name:
        span_attributes["workflow.name"] = workflow_name
    span_attributes.update(attributes)

    with _traced(f"workflow:{operation}", span_attributes) as span:
        yield span


@contextmanager
def phase_span(
    from_phase: str,
    to_phase: str | None,
    workflow_name: str | None = None,
    **attributes: Any,
) -> Generator[Span, None, None]:
    """Create a span for a phase transition.

    Should be opened inside a workflow_span so transitions nest under
    the operation that caused them.

    Args:
        from_phase: Phase code being completed
        to_phase: Phase code being started, or None when the workflow completes
        workflow_name: Workflow name
        **attributes: Additional span attributes
    """
    span_attributes: dict[str, Any] = {
        "phase.from": from_phase,
        "phase.to": to_phase or "complete",
    }
    if workflow_name:
        span_attributes["workflow.name"] = workflow_name
    span_attributes.update(attributes)

    with _traced(f"phase:{from_phase}->{to_phase or 'complete'}", span_attributes) as span:
        yield span


def record_error(span: Span, error: Exception) -> None:
    """Record an error to a span with structured attributes.

    Workflow errors also carry their machine-readable kind.

    Args:
        span: The span to record the error on
        error: The exception that occurred
    """
    span.set_attribute("error", True)
    span.set_attribute("error.type", type(error).__name__)
    span.set_attribute("error.message", str(error)[:500])

    kind = getattr(error, "kind", None)
    if kind is not None:
        span.set_attribute("error.kind", getattr(kind, "value", str(kind)))

    span.record_exception(error)
    span.set_status(StatusCode.ERROR, str(error))
