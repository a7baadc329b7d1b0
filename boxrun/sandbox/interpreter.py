"""
Turns a backend's raw termination state into a normalized ExecutionResult.
"""
import signal as signal_module
from typing import Optional

from boxrun.sandbox.base import (
    ExecutionResult,
    SandboxConfig,
    TerminationDescriptor,
    TerminationOutcome,
)

CPU_LIMIT_SIGNALS = frozenset({signal_module.SIGXCPU})


def classify(
    descriptor: Optional[TerminationDescriptor],
    config: SandboxConfig,
    limit_signal: Optional[int] = None,
    timeout_sentinel: Optional[int] = None,
) -> TerminationOutcome:
    """Pick exactly one outcome for a finished run.

    The memory/stack rule check runs before the generic signal check so a
    limit kill is never reported as an ordinary crash.
    """
    if descriptor is None:
        return TerminationOutcome.INTERNAL_ERROR

    if descriptor.signaled:
        if descriptor.limit_kill:
            return TerminationOutcome.MEMORY_EXCEEDED
        if (
            limit_signal is not None
            and descriptor.signal == limit_signal
            and config.memory_limit > 0
        ):
            return TerminationOutcome.MEMORY_EXCEEDED
    elif descriptor.limit_kill:
        return TerminationOutcome.MEMORY_EXCEEDED

    if descriptor.timed_out:
        return TerminationOutcome.TIMEOUT

    if descriptor.signaled:
        if config.cpu_time_limit > 0 and descriptor.signal in CPU_LIMIT_SIGNALS:
            return TerminationOutcome.TIMEOUT
        return TerminationOutcome.KILLED_BY_SIGNAL

    if timeout_sentinel is not None and descriptor.exit_code == timeout_sentinel:
        return TerminationOutcome.TIMEOUT

    if descriptor.exit_code is None:
        return TerminationOutcome.INTERNAL_ERROR
    if descriptor.exit_code != 0:
        return TerminationOutcome.RUNTIME_ERROR
    return TerminationOutcome.SUCCESS


def interpret(
    descriptor: Optional[TerminationDescriptor],
    stdout: str,
    stderr: str,
    config: SandboxConfig,
    limit_signal: Optional[int] = None,
    timeout_sentinel: Optional[int] = None,
) -> ExecutionResult:
    """Build the ExecutionResult for a run.

    Args:
        descriptor: Decoded termination state, or None if it was unreadable.
        stdout: Captured standard output of the program.
        stderr: Captured standard error of the program.
        config: The configuration the run was made with.
        limit_signal: Signal the backend's memory rule kills with.
        timeout_sentinel: Reserved exit status of the wall-time bounding layer.

    Returns:
        ExecutionResult with exactly one outcome set. The sentinel status is
        never exposed as an exit code.
    """
    outcome = classify(descriptor, config, limit_signal, timeout_sentinel)
    result = ExecutionResult(stdout=stdout, stderr=stderr, outcome=outcome)
    if descriptor is None:
        return result

    result.cpu_time = descriptor.cpu_time
    result.wall_time = descriptor.wall_time
    result.memory_used = descriptor.max_rss
    result.signal = descriptor.signal

    sentinel_hit = (
        timeout_sentinel is not None
        and not descriptor.signaled
        and descriptor.exit_code == timeout_sentinel
    )
    if not sentinel_hit:
        result.exit_code = descriptor.exit_code
    return result
