"""
Configuration module for boxrun.
"""
from boxrun.config.logging import setup_logging
from boxrun.config.defaults import (
    SANDBOX_DEFAULTS,
    TOOL_DEFAULTS,
    ALLOCATOR_DEFAULTS,
    METRICS_DEFAULTS,
    SandboxDefaults,
    ToolDefaults,
)

__all__ = [
    "setup_logging",
    "SANDBOX_DEFAULTS",
    "TOOL_DEFAULTS",
    "ALLOCATOR_DEFAULTS",
    "METRICS_DEFAULTS",
    "SandboxDefaults",
    "ToolDefaults",
]
