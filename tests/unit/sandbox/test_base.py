"""
Unit tests for the sandbox data model.
"""
import signal

import pytest

from boxrun.sandbox.base import (
    EnvironmentVariable,
    ExecutionResult,
    SandboxConfig,
    TerminationOutcome,
    default_config,
)


class TestSandboxConfig:
    def test_defaults_are_unlimited(self):
        config = SandboxConfig()
        assert config.cpu_time_limit == 0
        assert config.wall_time_limit == 0
        assert config.memory_limit == 0
        assert config.stack_limit == 0
        assert config.max_processes == 0
        assert not config.share_network
        assert not config.full_environment
        assert config.environment == []

    def test_default_config_reports_libc_errors_on_stderr(self):
        config = default_config()
        assert config.environment == [EnvironmentVariable("LIBC_FATAL_STDERR_", "1")]

    def test_default_config_is_fresh_each_time(self):
        first = default_config()
        first.add_env("EXTRA", "1")
        assert len(default_config().environment) == 1

    @pytest.mark.parametrize("field", [
        "cpu_time_limit", "wall_time_limit", "memory_limit", "stack_limit", "max_processes",
    ])
    def test_negative_limits_rejected(self, field):
        with pytest.raises(ValueError, match=field):
            SandboxConfig(**{field: -1})

    def test_environment_pairs_are_converted(self):
        config = SandboxConfig(environment=[("A", "1"), ("B",)])
        assert config.environment == [EnvironmentVariable("A", "1"), EnvironmentVariable("B", "")]

    def test_add_env_chains(self):
        config = SandboxConfig().add_env("A", "1").add_env("B")
        assert [var.name for var in config.environment] == ["A", "B"]
        assert config.environment[1].inherited

    def test_copy_is_independent(self):
        config = SandboxConfig(memory_limit=10)
        clone = config.copy()
        clone.memory_limit = 20
        clone.add_env("X", "y")
        assert config.memory_limit == 10
        assert config.environment == []


class TestExecutionResult:
    def test_ok(self):
        assert ExecutionResult(exit_code=0, outcome=TerminationOutcome.SUCCESS).ok
        assert not ExecutionResult(exit_code=1, outcome=TerminationOutcome.RUNTIME_ERROR).ok

    def test_signal_name(self):
        assert ExecutionResult(signal=signal.SIGKILL).signal_name == "SIGKILL"
        assert ExecutionResult().signal_name is None

    def test_to_dict_uses_outcome_value(self):
        data = ExecutionResult(stdout="x", exit_code=0, outcome=TerminationOutcome.SUCCESS).to_dict()
        assert data["outcome"] == "success"
        assert data["stdout"] == "x"
        assert data["exit_code"] == 0

    def test_outcome_values(self):
        assert TerminationOutcome.SUCCESS.value == "success"
        assert TerminationOutcome.RUNTIME_ERROR.value == "runtime_error"
        assert TerminationOutcome.KILLED_BY_SIGNAL.value == "killed_by_signal"
        assert TerminationOutcome.TIMEOUT.value == "timeout"
        assert TerminationOutcome.MEMORY_EXCEEDED.value == "memory_exceeded"
        assert TerminationOutcome.INTERNAL_ERROR.value == "internal_error"
