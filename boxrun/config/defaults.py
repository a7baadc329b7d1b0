"""
Centralized configuration defaults for boxrun.

This module provides a single source of truth for the constants and tool
locations used by the sandbox backends.
"""
from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class SandboxDefaults:
    """Default sandbox configuration."""
    name_prefix: str = "boxrun"
    # Exit status of timeout(1) when the bounded command was killed.
    timeout_sentinel: int = 124
    isolate_meta_suffix: str = ".meta"
    use_cgroups: bool = True
    base_environment: Tuple[Tuple[str, str], ...] = (
        ("LIBC_FATAL_STDERR_", "1"),
    )


@dataclass(frozen=True)
class ToolDefaults:
    """Absolute paths of the privileged tools each backend drives."""
    isolate: str = "/usr/local/bin/isolate"
    jail: str = "/usr/sbin/jail"
    jexec: str = "/usr/sbin/jexec"
    rctl: str = "/usr/bin/rctl"
    timeout: str = "/usr/bin/timeout"
    limits: str = "/usr/bin/limits"

    def to_dict(self) -> Dict[str, str]:
        return {
            "isolate": self.isolate,
            "jail": self.jail,
            "jexec": self.jexec,
            "rctl": self.rctl,
            "timeout": self.timeout,
            "limits": self.limits,
        }


@dataclass(frozen=True)
class AllocatorDefaults:
    """Default id range handed out by BoxIdAllocator."""
    first_id: int = 0
    count: int = 100


@dataclass(frozen=True)
class MetricsDefaults:
    service_name: str = "boxrun"
    exporter: str = "none"
    export_interval_millis: int = 10000


# Global default instances
SANDBOX_DEFAULTS = SandboxDefaults()
TOOL_DEFAULTS = ToolDefaults()
ALLOCATOR_DEFAULTS = AllocatorDefaults()
METRICS_DEFAULTS = MetricsDefaults()


def get_default_tools() -> Dict[str, str]:
    """Get default tool paths as a dictionary."""
    return TOOL_DEFAULTS.to_dict()
