"""
OpenTelemetry metrics definitions for boxrun.

This module provides metrics instrumentation using OpenTelemetry SDK,
with configurable exporter backends (Prometheus, OTLP, Console). Every
record_* helper is a no-op until init_metrics() has been called.
"""

import time
from typing import Optional, List
from enum import Enum

from boxrun.config.defaults import METRICS_DEFAULTS


class ExporterType(str, Enum):
    """Supported metrics exporter types."""
    PROMETHEUS = "prometheus"
    OTLP = "otlp"
    OTLP_HTTP = "otlp_http"
    CONSOLE = "console"
    NONE = "none"  # For testing or disabled metrics


# Global state
_meter = None
_meter_provider = None
_initialized = False

# Metric instruments
_sandbox_counter = None
_sandbox_active = None

_run_counter = None
_run_wall_time = None
_run_cpu_time = None


def _create_exporter(
    exporter_type: ExporterType,
    **kwargs,
):
    """
    Create a metric reader based on the exporter type.

    Args:
        exporter_type: Type of exporter to create
        **kwargs: Additional arguments for the exporter
            - endpoint: OTLP endpoint URL
            - headers: OTLP headers dict
            - export_interval_millis: Export interval for periodic exporters

    Returns:
        A metric reader instance, or None for ExporterType.NONE
    """
    from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader

    export_interval = kwargs.pop("export_interval_millis", METRICS_DEFAULTS.export_interval_millis)

    if exporter_type == ExporterType.PROMETHEUS:
        from opentelemetry.exporter.prometheus import PrometheusMetricReader
        return PrometheusMetricReader()

    elif exporter_type == ExporterType.OTLP:
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
        exporter = OTLPMetricExporter(**kwargs)
        return PeriodicExportingMetricReader(
            exporter,
            export_interval_millis=export_interval,
        )

    elif exporter_type == ExporterType.OTLP_HTTP:
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        exporter = OTLPMetricExporter(**kwargs)
        return PeriodicExportingMetricReader(
            exporter,
            export_interval_millis=export_interval,
        )

    elif exporter_type == ExporterType.CONSOLE:
        from opentelemetry.sdk.metrics.export import ConsoleMetricExporter
        exporter = ConsoleMetricExporter()
        return PeriodicExportingMetricReader(
            exporter,
            export_interval_millis=export_interval,
        )

    elif exporter_type == ExporterType.NONE:
        return None

    else:
        raise ValueError(f"Unknown exporter type: {exporter_type}")


def init_metrics(
    service_name: str = METRICS_DEFAULTS.service_name,
    exporter_type: str | ExporterType = METRICS_DEFAULTS.exporter,
    additional_exporters: Optional[List[tuple]] = None,
    metric_readers: Optional[List] = None,
    **exporter_kwargs,
):
    """
    Initialize OpenTelemetry metrics with the specified exporter(s).

    Args:
        service_name: Name of the service for resource identification
        exporter_type: Primary exporter type ("prometheus", "otlp", "otlp_http", "console", "none")
        additional_exporters: List of (exporter_type, kwargs) tuples for additional exporters
        metric_readers: Ready-made readers to attach, e.g. an InMemoryMetricReader in tests
        **exporter_kwargs: Additional arguments for the primary exporter

    Returns:
        The configured MeterProvider

    Example:
        # Console output while debugging a judge host
        init_metrics(exporter_type="console")

        # OTLP gRPC
        init_metrics(exporter_type="otlp", endpoint="http://localhost:4317")
    """
    global _meter, _meter_provider, _initialized
    global _sandbox_counter, _sandbox_active
    global _run_counter, _run_wall_time, _run_cpu_time

    if _initialized:
        return _meter_provider

    from opentelemetry.sdk.metrics import MeterProvider
    from opentelemetry.sdk.resources import Resource, SERVICE_NAME

    if isinstance(exporter_type, str):
        exporter_type = ExporterType(exporter_type)

    resource = Resource.create({SERVICE_NAME: service_name})

    readers = list(metric_readers or [])

    primary_reader = _create_exporter(exporter_type, **exporter_kwargs)
    if primary_reader is not None:
        readers.append(primary_reader)

    if additional_exporters:
        for exp_type, exp_kwargs in additional_exporters:
            if isinstance(exp_type, str):
                exp_type = ExporterType(exp_type)
            reader = _create_exporter(exp_type, **exp_kwargs)
            if reader is not None:
                readers.append(reader)

    # Instruments come from our own provider rather than the process-wide one,
    # which OpenTelemetry only lets us set once.
    _meter_provider = MeterProvider(resource=resource, metric_readers=readers)
    _meter = _meter_provider.get_meter("boxrun.metrics")

    _sandbox_counter = _meter.create_counter(
        name="boxrun_sandbox_total",
        description="Sandbox lifecycle events",
        unit="1",
    )

    _sandbox_active = _meter.create_up_down_counter(
        name="boxrun_sandbox_active",
        description="Number of initialized sandboxes not yet cleaned up",
        unit="1",
    )

    _run_counter = _meter.create_counter(
        name="boxrun_run_total",
        description="Total number of sandboxed runs by outcome",
        unit="1",
    )

    _run_wall_time = _meter.create_histogram(
        name="boxrun_run_wall_seconds",
        description="Wall-clock time of sandboxed runs",
        unit="s",
    )

    _run_cpu_time = _meter.create_histogram(
        name="boxrun_run_cpu_seconds",
        description="CPU time consumed by sandboxed runs",
        unit="s",
    )

    _initialized = True
    return _meter_provider


def shutdown_metrics() -> None:
    """Shutdown the meter provider and flush metrics."""
    global _meter, _meter_provider, _initialized
    global _sandbox_counter, _sandbox_active
    global _run_counter, _run_wall_time, _run_cpu_time
    if _meter_provider is not None:
        _meter_provider.shutdown()
    _meter = None
    _meter_provider = None
    _initialized = False
    _sandbox_counter = _sandbox_active = None
    _run_counter = _run_wall_time = _run_cpu_time = None


def is_initialized() -> bool:
    """Check if metrics have been initialized."""
    return _initialized


def get_meter_provider():
    """Get the current meter provider."""
    return _meter_provider


def get_meter():
    """Get the current meter instance."""
    return _meter


# =============================================================================
# Sandbox Lifecycle Helper Functions
# =============================================================================


def record_sandbox_initialized(backend: str) -> None:
    if _sandbox_counter is not None:
        _sandbox_counter.add(1, {"backend": backend, "event": "initialized"})
    if _sandbox_active is not None:
        _sandbox_active.add(1, {"backend": backend})


def record_sandbox_init_failed(backend: str) -> None:
    if _sandbox_counter is not None:
        _sandbox_counter.add(1, {"backend": backend, "event": "init_failed"})


def record_sandbox_cleaned_up(backend: str, was_active: bool = True) -> None:
    if _sandbox_counter is not None:
        _sandbox_counter.add(1, {"backend": backend, "event": "cleaned_up"})
    if was_active and _sandbox_active is not None:
        _sandbox_active.add(-1, {"backend": backend})


def record_sandbox_cleanup_failed(backend: str, was_active: bool = True) -> None:
    """Record a partial teardown. The namespace may have been leaked."""
    if _sandbox_counter is not None:
        _sandbox_counter.add(1, {"backend": backend, "event": "cleanup_failed"})
    if was_active and _sandbox_active is not None:
        _sandbox_active.add(-1, {"backend": backend})


# =============================================================================
# Run Helper Functions
# =============================================================================


def record_run(backend: str, outcome: str, wall_time: float, cpu_time: float) -> None:
    """Record one finished run."""
    attributes = {"backend": backend, "outcome": outcome}
    if _run_counter is not None:
        _run_counter.add(1, attributes)
    if _run_wall_time is not None:
        _run_wall_time.record(wall_time, attributes)
    if _run_cpu_time is not None:
        _run_cpu_time.record(cpu_time, attributes)


def record_run_error(backend: str, duration: Optional[float] = None) -> None:
    """Record a run that raised an infrastructure error."""
    attributes = {"backend": backend, "outcome": "error"}
    if _run_counter is not None:
        _run_counter.add(1, attributes)
    if duration is not None and _run_wall_time is not None:
        _run_wall_time.record(duration, attributes)


# =============================================================================
# Context Managers
# =============================================================================


class RunTimer:
    """Context manager recording a run.

    Call set_result() with the ExecutionResult inside the block; if the block
    raises instead, the run is recorded as an infrastructure error.
    """

    def __init__(self, backend: str):
        self.backend = backend
        self.start_time: Optional[float] = None
        self.result = None

    def set_result(self, result) -> None:
        self.result = result

    def __enter__(self) -> "RunTimer":
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is None:
            return
        duration = time.monotonic() - self.start_time
        if exc_type is not None or self.result is None:
            record_run_error(self.backend, duration)
        else:
            record_run(
                self.backend,
                self.result.outcome.value,
                self.result.wall_time,
                self.result.cpu_time,
            )
