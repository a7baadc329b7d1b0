"""
Unit tests for termination classification.
"""
import signal

import pytest

from boxrun.sandbox.base import SandboxConfig, TerminationDescriptor, TerminationOutcome
from boxrun.sandbox.interpreter import classify, interpret


@pytest.fixture
def no_limits():
    return SandboxConfig()


class TestClassify:
    def test_unreadable_state_is_internal_error(self, no_limits):
        assert classify(None, no_limits) == TerminationOutcome.INTERNAL_ERROR

    def test_exit_zero_is_success(self, no_limits):
        assert classify(TerminationDescriptor(exit_code=0), no_limits) == TerminationOutcome.SUCCESS

    def test_non_zero_exit_is_runtime_error(self, no_limits):
        assert classify(TerminationDescriptor(exit_code=7), no_limits) == TerminationOutcome.RUNTIME_ERROR

    def test_no_exit_code_and_no_signal_is_internal_error(self, no_limits):
        assert classify(TerminationDescriptor(), no_limits) == TerminationOutcome.INTERNAL_ERROR

    def test_segfault_without_memory_limit_is_signal(self, no_limits):
        descriptor = TerminationDescriptor(signal=signal.SIGSEGV)
        outcome = classify(descriptor, no_limits, limit_signal=signal.SIGSEGV)
        assert outcome == TerminationOutcome.KILLED_BY_SIGNAL

    def test_rule_signal_with_memory_limit_is_memory_exceeded(self):
        config = SandboxConfig(memory_limit=2048)
        descriptor = TerminationDescriptor(signal=signal.SIGSEGV)
        outcome = classify(descriptor, config, limit_signal=signal.SIGSEGV)
        assert outcome == TerminationOutcome.MEMORY_EXCEEDED

    def test_other_signal_with_memory_limit_is_signal(self):
        config = SandboxConfig(memory_limit=2048)
        descriptor = TerminationDescriptor(signal=signal.SIGABRT)
        outcome = classify(descriptor, config, limit_signal=signal.SIGSEGV)
        assert outcome == TerminationOutcome.KILLED_BY_SIGNAL

    def test_backend_reported_limit_kill(self, no_limits):
        descriptor = TerminationDescriptor(signal=signal.SIGKILL, limit_kill=True)
        assert classify(descriptor, no_limits) == TerminationOutcome.MEMORY_EXCEEDED

    def test_limit_kill_wins_over_timeout(self, no_limits):
        descriptor = TerminationDescriptor(signal=signal.SIGKILL, limit_kill=True, timed_out=True)
        assert classify(descriptor, no_limits) == TerminationOutcome.MEMORY_EXCEEDED

    def test_native_timeout_wins_over_signal(self, no_limits):
        descriptor = TerminationDescriptor(signal=signal.SIGKILL, timed_out=True)
        assert classify(descriptor, no_limits) == TerminationOutcome.TIMEOUT

    def test_sentinel_is_timeout(self, no_limits):
        descriptor = TerminationDescriptor(exit_code=124)
        assert classify(descriptor, no_limits, timeout_sentinel=124) == TerminationOutcome.TIMEOUT

    def test_sentinel_value_without_bounding_layer_is_runtime_error(self, no_limits):
        descriptor = TerminationDescriptor(exit_code=124)
        assert classify(descriptor, no_limits) == TerminationOutcome.RUNTIME_ERROR

    def test_cpu_limit_signal_is_timeout(self):
        config = SandboxConfig(cpu_time_limit=1)
        descriptor = TerminationDescriptor(signal=signal.SIGXCPU)
        assert classify(descriptor, config) == TerminationOutcome.TIMEOUT

    def test_sigxcpu_without_cpu_limit_is_signal(self, no_limits):
        descriptor = TerminationDescriptor(signal=signal.SIGXCPU)
        assert classify(descriptor, no_limits) == TerminationOutcome.KILLED_BY_SIGNAL


class TestInterpret:
    def test_copies_measurements(self, no_limits):
        descriptor = TerminationDescriptor(exit_code=3, cpu_time=0.5, wall_time=0.75, max_rss=1234)
        result = interpret(descriptor, "out", "err", no_limits)
        assert result.outcome == TerminationOutcome.RUNTIME_ERROR
        assert result.exit_code == 3
        assert result.signal is None
        assert result.cpu_time == 0.5
        assert result.wall_time == 0.75
        assert result.memory_used == 1234
        assert result.stdout == "out"
        assert result.stderr == "err"

    def test_sentinel_is_not_exposed_as_exit_code(self, no_limits):
        descriptor = TerminationDescriptor(exit_code=124, wall_time=1.0)
        result = interpret(descriptor, "", "", no_limits, timeout_sentinel=124)
        assert result.outcome == TerminationOutcome.TIMEOUT
        assert result.exit_code is None

    def test_records_signal(self):
        config = SandboxConfig(memory_limit=1024)
        descriptor = TerminationDescriptor(signal=signal.SIGSEGV)
        result = interpret(descriptor, "", "", config, limit_signal=signal.SIGSEGV)
        assert result.outcome == TerminationOutcome.MEMORY_EXCEEDED
        assert result.signal == signal.SIGSEGV
        assert result.signal_name == "SIGSEGV"

    def test_internal_error_keeps_output(self, no_limits):
        result = interpret(None, "partial", "isolate: broken", no_limits)
        assert result.outcome == TerminationOutcome.INTERNAL_ERROR
        assert result.stderr == "isolate: broken"
        assert result.exit_code is None
