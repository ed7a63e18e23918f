"""Tests for telemetry configuration and workflow spans.

Covers:
- TelemetryConfig.from_env parsing
- init/shutdown lifecycle
- Span names, attributes and error recording
- Phase spans nest under the advance operation span
"""

import logging

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from prevc.config import GateType, PhaseCode
from prevc.telemetry import (
    ExporterType,
    TelemetryConfig,
    init_telemetry,
    is_telemetry_enabled,
    phase_span,
    shutdown_telemetry,
    workflow_span,
)
from prevc.workflow.errors import WorkflowGateError


@pytest.fixture
def exporter(monkeypatch):
    """Route workflow spans to an in-memory exporter."""
    span_exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    monkeypatch.setattr("prevc.telemetry.spans.get_tracer", lambda: provider.get_tracer("test"))
    return span_exporter


@pytest.fixture
def restore_logging():
    """Undo the root logger changes made by init_telemetry."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    shutdown_telemetry()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestTelemetryConfig:
    """Environment parsing."""

    def test_defaults(self, monkeypatch):
        for name in ("OTEL_TRACES_EXPORTER", "OTEL_SDK_DISABLED", "OTEL_SERVICE_NAME", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        config = TelemetryConfig.from_env()
        assert config == TelemetryConfig()
        assert config.traces_exporter == ExporterType.NONE

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("OTEL_TRACES_EXPORTER", "CONSOLE")
        monkeypatch.setenv("OTEL_SDK_DISABLED", "yes")
        monkeypatch.setenv("OTEL_SERVICE_NAME", "prevc-test")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        config = TelemetryConfig.from_env()
        assert config.traces_exporter == ExporterType.CONSOLE
        assert config.otel_disabled is True
        assert config.service_name == "prevc-test"
        assert config.log_level == "DEBUG"

    def test_unknown_exporter_falls_back(self, monkeypatch):
        monkeypatch.setenv("OTEL_TRACES_EXPORTER", "zipkin")
        assert TelemetryConfig.from_env().traces_exporter == ExporterType.NONE


class TestLifecycle:
    """init_telemetry and shutdown_telemetry."""

    def test_disabled_tracing(self, restore_logging):
        init_telemetry(TelemetryConfig(otel_disabled=True, log_level="WARNING"))
        assert is_telemetry_enabled() is False
        assert logging.getLogger("prevc").level == logging.WARNING

    def test_init_is_idempotent(self, restore_logging):
        init_telemetry(TelemetryConfig(otel_disabled=True))
        handlers = logging.getLogger().handlers[:]
        init_telemetry(TelemetryConfig(otel_disabled=True, log_level="DEBUG"))
        assert logging.getLogger().handlers == handlers

    def test_shutdown_without_init_is_noop(self):
        shutdown_telemetry()
        assert is_telemetry_enabled() is False


class TestSpans:
    """Span helpers."""

    def test_workflow_span(self, exporter):
        with workflow_span("init", repo_path="/repo", workflow_name="demo", extra="x"):
            pass
        (span,) = exporter.get_finished_spans()
        assert span.name == "workflow:init"
        assert span.attributes["workflow.operation"] == "init"
        assert span.attributes["workflow.repo_path"] == "/repo"
        assert span.attributes["workflow.name"] == "demo"
        assert span.attributes["extra"] == "x"
        assert span.status.status_code == StatusCode.OK

    def test_error_recorded_and_reraised(self, exporter):
        error = WorkflowGateError("blocked", GateType.PLAN_REQUIRED, PhaseCode.P, PhaseCode.R, "link a plan")
        with pytest.raises(WorkflowGateError):
            with workflow_span("advance"):
                raise error
        (span,) = exporter.get_finished_spans()
        assert span.attributes["error"] is True
        assert span.attributes["error.type"] == "WorkflowGateError"
        assert span.attributes["error.kind"] == "gate_blocked"
        assert span.status.status_code == StatusCode.ERROR

    def test_phase_span_to_completion(self, exporter):
        with phase_span("V", None, workflow_name="demo"):
            pass
        (span,) = exporter.get_finished_spans()
        assert span.name == "phase:V->complete"
        assert span.attributes["phase.to"] == "complete"

    def test_advance_nests_phase_span(self, exporter, service):
        service.init("fix", scale="QUICK")
        exporter.clear()

        service.advance()

        spans = {span.name: span for span in exporter.get_finished_spans()}
        assert set(spans) == {"workflow:advance", "phase:E->V"}
        assert spans["phase:E->V"].parent.span_id == spans["workflow:advance"].context.span_id
