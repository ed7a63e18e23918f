"""Telemetry and observability for the PREVC workflow engine.

Usage:
    from prevc.telemetry import init_telemetry, workflow_span

    # Initialize once at startup
    init_telemetry()

    with workflow_span("advance", repo_path="/repo") as span:
        span.set_attribute("custom.attribute", "value")
"""

from .config import (
    ExporterType,
    TelemetryConfig,
    get_telemetry_config,
    init_telemetry,
    is_telemetry_enabled,
    shutdown_telemetry,
)
from .spans import (
    get_tracer,
    phase_span,
    record_error,
    workflow_span,
)

__all__ = [
    # Configuration
    "ExporterType",
    "TelemetryConfig",
    "get_telemetry_config",
    "init_telemetry",
    "shutdown_telemetry",
    "is_telemetry_enabled",
    # Spans
    "get_tracer",
    "workflow_span",
    "phase_span",
    "record_error",
]
