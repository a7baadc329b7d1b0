"""
Translation of a SandboxConfig into backend-native limit primitives.

The policy is the same for every backend; only the vocabulary differs:
isolate takes command-line flags, FreeBSD jails take rctl rules plus wrapper
commands around jexec.
"""
import logging
import math
from typing import Dict, List, Mapping

from boxrun.config.defaults import ToolDefaults
from boxrun.sandbox.base import SandboxConfig

logger = logging.getLogger(__name__)


def format_seconds(value: float) -> str:
    return f"{value:.3f}"


def process_ceiling(config: SandboxConfig) -> int:
    """Total processes allowed in the sandbox: the program plus max_processes.

    Returns 0 when unlimited.
    """
    if config.max_processes <= 0:
        return 0
    return config.max_processes + 1


def resolve_explicit_environment(config: SandboxConfig, environ: Mapping[str, str]) -> Dict[str, str]:
    """Resolve the configured entries, inheriting empty values from environ.

    An inherited entry missing from environ is left unset.
    """
    resolved: Dict[str, str] = {}
    for var in config.environment:
        if not var.inherited:
            resolved[var.name] = var.value
        elif var.name in environ:
            resolved[var.name] = environ[var.name]
        else:
            logger.debug(f"Not setting {var.name}: absent from the invoking environment")
    return resolved


def resolve_environment(config: SandboxConfig, environ: Mapping[str, str]) -> Dict[str, str]:
    """Full environment the sandboxed program starts with."""
    env = dict(environ) if config.full_environment else {}
    env.update(resolve_explicit_environment(config, environ))
    return env


# =============================================================================
# isolate (Linux)
# =============================================================================


def isolate_limit_options(config: SandboxConfig, use_cgroups: bool = True) -> List[str]:
    """isolate flags for every limit in config."""
    options: List[str] = []
    if use_cgroups:
        options.append("--cg")
    if config.cpu_time_limit > 0:
        options.append(f"--time={format_seconds(config.cpu_time_limit)}")
    if config.wall_time_limit > 0:
        options.append(f"--wall-time={format_seconds(config.wall_time_limit)}")
    if config.memory_limit > 0:
        if use_cgroups:
            options.append(f"--cg-mem={config.memory_limit}")
        else:
            options.append(f"--mem={config.memory_limit}")
    if config.stack_limit > 0:
        options.append(f"--stack={config.stack_limit}")
    ceiling = process_ceiling(config)
    # isolate defaults to a single process; a bare flag lifts the limit.
    options.append(f"--processes={ceiling}" if ceiling else "--processes")
    if config.share_network:
        options.append("--share-net")
    return options


def isolate_env_options(config: SandboxConfig, environ: Mapping[str, str]) -> List[str]:
    options: List[str] = []
    if config.full_environment:
        options.append("--full-env")
    for name, value in resolve_explicit_environment(config, environ).items():
        options.append(f"--env={name}={value}")
    return options


# =============================================================================
# jail + rctl (FreeBSD)
# =============================================================================


def rctl_rules(config: SandboxConfig) -> List[str]:
    """rctl resource/action pairs applied when the jail is created."""
    rules: List[str] = []
    if config.memory_limit > 0:
        rules.append(f"memoryuse:sigsegv={config.memory_limit}K")
    if config.stack_limit > 0:
        rules.append(f"stacksize:sigsegv={config.stack_limit}K")
    ceiling = process_ceiling(config)
    if ceiling:
        rules.append(f"maxproc:deny={ceiling}")
    return rules


def jail_network_params(config: SandboxConfig) -> List[str]:
    if config.share_network:
        return ["ip4=inherit", "ip6=inherit"]
    return ["ip4=disable", "ip6=disable"]


def jail_run_wrappers(config: SandboxConfig, tools: ToolDefaults) -> List[str]:
    """Commands placed in front of jexec to bound wall and CPU time."""
    wrappers: List[str] = []
    if config.wall_time_limit > 0:
        # The program must not outlive the limit by ignoring SIGTERM.
        wrappers.extend([tools.timeout, "-s", "KILL", f"{format_seconds(config.wall_time_limit)}s"])
    if config.cpu_time_limit > 0:
        # Soft limit only: the kernel sends SIGXCPU instead of SIGKILL.
        wrappers.extend([tools.limits, "-S", "-t", str(math.ceil(config.cpu_time_limit))])
    return wrappers
