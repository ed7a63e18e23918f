"""Telemetry configuration for the PREVC workflow engine.

Configures stdlib logging and an OpenTelemetry TracerProvider from
environment variables:

    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR) - default: INFO
    OTEL_SERVICE_NAME: Service name for traces - default: prevc-workflow
    OTEL_TRACES_EXPORTER: Exporter type (console, none) - default: none
    OTEL_SDK_DISABLED: Disable tracing entirely - default: false
"""

import logging
import os
import sys
from dataclasses import dataclass
from enum import Enum

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "prevc-workflow"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_telemetry_initialized = False
_tracer_provider: TracerProvider | None = None


class ExporterType(str, Enum):
    """Supported trace exporter types."""

    CONSOLE = "console"
    NONE = "none"


@dataclass
class TelemetryConfig:
    """Telemetry configuration settings.

    Attributes:
        service_name: Service name recorded on every span
        traces_exporter: Where finished spans are sent
        otel_disabled: Skip TracerProvider setup (the API's no-op tracer is used)
        log_level: Logging level name
    """

    service_name: str = DEFAULT_SERVICE_NAME
    traces_exporter: ExporterType = ExporterType.NONE
    otel_disabled: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "TelemetryConfig":
        """Create configuration from environment variables."""
        exporter_str = os.getenv("OTEL_TRACES_EXPORTER", "none").lower()
        try:
            exporter = ExporterType(exporter_str)
        except ValueError:
            logger.warning(f"Unknown OTEL_TRACES_EXPORTER '{exporter_str}', using 'none'")
            exporter = ExporterType.NONE

        otel_disabled = os.getenv("OTEL_SDK_DISABLED", "false").lower() in ("true", "1", "yes")

        return cls(
            service_name=os.getenv("OTEL_SERVICE_NAME", DEFAULT_SERVICE_NAME),
            traces_exporter=exporter,
            otel_disabled=otel_disabled,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def _setup_logging(config: TelemetryConfig) -> None:
    """Configure the root and ``prevc`` loggers with a console handler."""
    level = logging.getLevelName(config.log_level)
    if not isinstance(level, int):
        level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    logging.getLogger("prevc").setLevel(level)

    logger.info(f"Logging configured: level={config.log_level}")


def _setup_tracing(config: TelemetryConfig) -> TracerProvider | None:
    """Install a global TracerProvider unless tracing is disabled."""
    if config.otel_disabled:
        logger.info("OpenTelemetry disabled via OTEL_SDK_DISABLED")
        return None

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: config.service_name}))
    if config.traces_exporter == ExporterType.CONSOLE:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        logger.info("Console exporter configured")

    trace.set_tracer_provider(provider)
    return provider


def init_telemetry(config: TelemetryConfig | None = None) -> None:
    """Initialize logging and tracing.

    Call once at process startup, before the first workflow operation.
    Later calls are ignored.

    Args:
        config: Optional configuration. If not provided, reads from environment.
    """
    global _telemetry_initialized, _tracer_provider

    if _telemetry_initialized:
        logger.debug("Telemetry already initialized, skipping")
        return

    if config is None:
        config = TelemetryConfig.from_env()

    _setup_logging(config)
    _tracer_provider = _setup_tracing(config)

    _telemetry_initialized = True
    logger.info(
        f"Telemetry initialized: service={config.service_name}, "
        f"exporter={config.traces_exporter.value}, "
        f"otel_disabled={config.otel_disabled}"
    )


def shutdown_telemetry() -> None:
    """Flush pending spans and reset the initialized flag."""
    global _telemetry_initialized, _tracer_provider

    if not _telemetry_initialized:
        return

    if _tracer_provider is not None:
        _tracer_provider.shutdown()

    _telemetry_initialized = False
    _tracer_provider = None
    logger.info("Telemetry shutdown complete")


def is_telemetry_enabled() -> bool:
    """Check if telemetry is initialized with tracing enabled."""
    return _telemetry_initialized and _tracer_provider is not None


def get_telemetry_config() -> TelemetryConfig:
    """Get the current telemetry configuration."""
    return TelemetryConfig.from_env()
