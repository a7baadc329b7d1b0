"""
Unit tests for sandbox metrics.
"""
import pytest
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from boxrun.observability import metrics
from boxrun.sandbox import ExecutionResult, Sandbox, TerminationOutcome


@pytest.fixture
def metric_reader():
    reader = InMemoryMetricReader()
    metrics.init_metrics(metric_readers=[reader])
    yield reader
    metrics.shutdown_metrics()


def collect(reader):
    points = {}
    data = reader.get_metrics_data()
    for resource_metrics in data.resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                points[metric.name] = list(metric.data.data_points)
    return points


def value_for(points, **attributes):
    for point in points:
        if all(point.attributes.get(k) == v for k, v in attributes.items()):
            return point.value
    return None


class TestMetricsDisabled:
    def test_helpers_are_noops(self):
        assert not metrics.is_initialized()
        metrics.record_sandbox_initialized("fake")
        metrics.record_run("fake", "success", 0.1, 0.1)
        metrics.record_run_error("fake")

    def test_unknown_exporter(self):
        with pytest.raises(ValueError):
            metrics.init_metrics(exporter_type="carrier-pigeon")
        assert not metrics.is_initialized()


class TestExporters:
    def test_prometheus_exporter(self):
        from prometheus_client import REGISTRY, generate_latest

        metrics.init_metrics(exporter_type="prometheus")
        try:
            metrics.record_run("fake", "timeout", 1.5, 0.5)
            exposition = generate_latest(REGISTRY).decode()
        finally:
            metrics.shutdown_metrics()
        assert "boxrun_run" in exposition
        assert 'outcome="timeout"' in exposition


class TestSandboxMetrics:
    def test_lifecycle_and_runs(self, metric_reader, fake_backend):
        result = ExecutionResult(exit_code=2, wall_time=0.5, cpu_time=0.25, outcome=TerminationOutcome.RUNTIME_ERROR)
        box = Sandbox(0, backend=fake_backend(result=result))
        box.init()

        points = collect(metric_reader)
        assert value_for(points["boxrun_sandbox_active"], backend="fake") == 1

        box.run("prog")
        box.run("prog")
        box.cleanup()

        points = collect(metric_reader)
        assert value_for(points["boxrun_run_total"], outcome="runtime_error") == 2
        assert value_for(points["boxrun_sandbox_total"], event="initialized") == 1
        assert value_for(points["boxrun_sandbox_total"], event="cleaned_up") == 1
        assert value_for(points["boxrun_sandbox_active"], backend="fake") == 0
        wall = points["boxrun_run_wall_seconds"][0]
        assert wall.count == 2
        assert wall.sum == pytest.approx(1.0)

    def test_run_error_is_counted(self, metric_reader, fake_backend):
        backend = fake_backend()

        def broken(*args, **kwargs):
            raise OSError("gone")

        backend.run = broken
        box = Sandbox(0, backend=backend)
        box.init()
        with pytest.raises(OSError):
            box.run("prog")

        points = collect(metric_reader)
        assert value_for(points["boxrun_run_total"], outcome="error") == 1

    def test_init_is_idempotent(self, metric_reader):
        provider = metrics.get_meter_provider()
        assert metrics.init_metrics() is provider
        assert metrics.get_meter() is not None

    def test_shutdown_resets_state(self, metric_reader):
        metrics.shutdown_metrics()
        assert not metrics.is_initialized()
        assert metrics.get_meter_provider() is None
