"""
boxrun - Resource-limited sandboxes for running untrusted programs.
"""
from boxrun.sandbox import (
    Sandbox,
    SandboxConfig,
    SandboxState,
    EnvironmentVariable,
    ExecutionResult,
    TerminationOutcome,
    BoxIdAllocator,
    default_config,
)
from boxrun.exceptions import (
    BoxrunError,
    SandboxError,
    BackendError,
    UnsupportedPlatformError,
    SandboxStateError,
    SpawnError,
    BackendCommandError,
    BoxIdExhaustedError,
)

__version__ = "0.1.0"

__all__ = [
    "Sandbox",
    "SandboxConfig",
    "SandboxState",
    "EnvironmentVariable",
    "ExecutionResult",
    "TerminationOutcome",
    "BoxIdAllocator",
    "default_config",
    "BoxrunError",
    "SandboxError",
    "BackendError",
    "UnsupportedPlatformError",
    "SandboxStateError",
    "SpawnError",
    "BackendCommandError",
    "BoxIdExhaustedError",
]
