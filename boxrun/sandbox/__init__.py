"""
Sandboxed execution of untrusted programs.

Backends:
- isolate: Linux, drives the isolate(1) tool with cgroup limits
- jails: FreeBSD, a persistent jail limited with rctl rules

The backend is picked from the host platform when a Sandbox is built. A
Sandbox goes through init(), any number of run() calls and cleanup(); each
run() returns an ExecutionResult whose outcome says how the program ended.
"""

# Core types and configuration
from boxrun.sandbox.base import (
    TerminationOutcome,
    EnvironmentVariable,
    SandboxConfig,
    TerminationDescriptor,
    ExecutionResult,
    SandboxBackend,
    default_config,
)

# Result interpretation
from boxrun.sandbox.interpreter import classify, interpret

# Backend selection
from boxrun.sandbox.factory import create_backend, SUPPORTED_PLATFORMS

# Lifecycle object
from boxrun.sandbox.box import Sandbox, SandboxState

# Optional id allocation
from boxrun.sandbox.allocator import BoxIdAllocator

__all__ = [
    # Core types
    "TerminationOutcome",
    "EnvironmentVariable",
    "SandboxConfig",
    "TerminationDescriptor",
    "ExecutionResult",
    "SandboxBackend",
    "default_config",
    # Interpretation
    "classify",
    "interpret",
    # Backends
    "create_backend",
    "SUPPORTED_PLATFORMS",
    # Lifecycle
    "Sandbox",
    "SandboxState",
    # Allocation
    "BoxIdAllocator",
]
