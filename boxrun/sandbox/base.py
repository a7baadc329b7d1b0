"""
Base types and configuration for sandbox execution.

This module provides the data model shared by every backend and the abstract
backend contract the Sandbox orchestrator delegates to.
"""
import copy
import logging
import signal as signal_module
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from boxrun.config.defaults import SANDBOX_DEFAULTS

logger = logging.getLogger(__name__)


class TerminationOutcome(str, Enum):
    """Why a run ended."""
    SUCCESS = "success"
    RUNTIME_ERROR = "runtime_error"
    KILLED_BY_SIGNAL = "killed_by_signal"
    TIMEOUT = "timeout"
    MEMORY_EXCEEDED = "memory_exceeded"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class EnvironmentVariable:
    """An environment entry. An empty value is inherited at run time."""
    name: str
    value: str = ""

    @property
    def inherited(self) -> bool:
        return self.value == ""


@dataclass
class SandboxConfig:
    cpu_time_limit: float = 0  # seconds, 0 means no limit
    wall_time_limit: float = 0  # seconds, 0 means no limit
    memory_limit: int = 0  # KB
    stack_limit: int = 0  # KB
    max_processes: int = 0
    share_network: bool = False
    full_environment: bool = False
    environment: List[EnvironmentVariable] = field(default_factory=list)

    def __post_init__(self):
        for name in ("cpu_time_limit", "wall_time_limit", "memory_limit", "stack_limit", "max_processes"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        self.environment = [
            var if isinstance(var, EnvironmentVariable) else EnvironmentVariable(*var)
            for var in self.environment
        ]

    def add_env(self, name: str, value: str = "") -> "SandboxConfig":
        """Append an environment entry and return self for chaining."""
        self.environment.append(EnvironmentVariable(name, value))
        return self

    def copy(self) -> "SandboxConfig":
        return copy.deepcopy(self)


def default_config() -> SandboxConfig:
    """Config with the baseline environment and no limits."""
    return SandboxConfig(
        environment=[EnvironmentVariable(name, value) for name, value in SANDBOX_DEFAULTS.base_environment],
    )


@dataclass
class TerminationDescriptor:
    """Raw termination state decoded by a backend, before classification."""
    exit_code: Optional[int] = None
    signal: Optional[int] = None
    cpu_time: float = 0.0
    wall_time: float = 0.0
    max_rss: int = 0  # KB
    limit_kill: bool = False
    timed_out: bool = False

    @property
    def signaled(self) -> bool:
        return self.signal is not None


@dataclass
class ExecutionResult:
    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
    signal: Optional[int] = None
    cpu_time: float = 0.0
    wall_time: float = 0.0
    memory_used: int = 0  # KB
    outcome: TerminationOutcome = TerminationOutcome.INTERNAL_ERROR

    @property
    def ok(self) -> bool:
        return self.outcome == TerminationOutcome.SUCCESS

    @property
    def signal_name(self) -> Optional[str]:
        if self.signal is None:
            return None
        try:
            return signal_module.Signals(self.signal).name
        except ValueError:
            return f"SIG{self.signal}"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["outcome"] = self.outcome.value
        return data


class SandboxBackend(ABC):
    """Platform-specific isolation mechanism bound to one sandbox id."""

    name: str = ""
    # Signal the backend's memory/stack rule kills with, if it uses one.
    limit_signal: Optional[int] = None
    # Reserved exit status of the wall-time bounding layer, if any.
    timeout_sentinel: Optional[int] = None

    def __init__(self, box_id: int):
        self.box_id = box_id
        self.path: Optional[str] = None

    @property
    def box_name(self) -> str:
        return f"{SANDBOX_DEFAULTS.name_prefix}{self.box_id}"

    @abstractmethod
    def init(self, config: SandboxConfig) -> str:
        """Create the namespace and apply static limits. Returns the sandbox root."""
        pass

    @abstractmethod
    def run(
        self,
        config: SandboxConfig,
        command: str,
        args: Sequence[str] = (),
        environ: Optional[Mapping[str, str]] = None,
    ) -> ExecutionResult:
        """Run a staged program inside the namespace."""
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Remove rules, destroy the namespace and delete the sandbox root."""
        pass
