"""
boxrun Observability Module.

Provides OpenTelemetry-based metrics for monitoring sandbox lifecycles and
run outcomes. Supports multiple exporter backends (Prometheus, OTLP, Console).
"""

from boxrun.observability.metrics import (
    # Initialization
    init_metrics,
    shutdown_metrics,
    is_initialized,
    get_meter_provider,
    get_meter,
    ExporterType,
    # Sandbox metrics
    record_sandbox_initialized,
    record_sandbox_init_failed,
    record_sandbox_cleaned_up,
    record_sandbox_cleanup_failed,
    # Run metrics
    record_run,
    record_run_error,
    # Context managers
    RunTimer,
)

__all__ = [
    # Initialization
    "init_metrics",
    "shutdown_metrics",
    "is_initialized",
    "get_meter_provider",
    "get_meter",
    "ExporterType",
    # Sandbox metrics
    "record_sandbox_initialized",
    "record_sandbox_init_failed",
    "record_sandbox_cleaned_up",
    "record_sandbox_cleanup_failed",
    # Run metrics
    "record_run",
    "record_run_error",
    # Context managers
    "RunTimer",
]
