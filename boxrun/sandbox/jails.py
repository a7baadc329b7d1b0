"""
Jail-based sandbox backend (FreeBSD).

A persistent jail rooted at a temporary directory is created per sandbox id
and limited with rctl rules. Programs are started with jexec. Wall time is
bounded with `timeout -s KILL`, whose exit status 124 is reserved to mean "killed
for running too long"; CPU time is bounded with a soft RLIMIT_CPU set by
limits(1).
"""
import logging
import os
import shutil
import signal
import tempfile
from typing import List, Mapping, Optional, Sequence

from boxrun.config.defaults import SANDBOX_DEFAULTS, TOOL_DEFAULTS, ToolDefaults
from boxrun.sandbox.base import (
    ExecutionResult,
    SandboxBackend,
    SandboxConfig,
    TerminationDescriptor,
)
from boxrun.sandbox.interpreter import interpret
from boxrun.sandbox.limits import (
    jail_network_params,
    jail_run_wrappers,
    rctl_rules,
    resolve_environment,
)
from boxrun.utils.process import ProcessOutcome, check_command, exec_command

logger = logging.getLogger(__name__)

# timeout(1) reports a child killed by signal N as exit status 128 + N.
SIGNAL_STATUS_BASE = 128


def descriptor_from_outcome(outcome: ProcessOutcome, wall_time_limit: float = 0) -> Optional[TerminationDescriptor]:
    """Decode the spawn helper's result for a jexec run.

    Args:
        outcome: Result of running the (possibly wrapped) jexec command.
        wall_time_limit: The wall limit timeout(1) enforced, 0 when unwrapped.
    """
    if outcome.rusage is None or (outcome.exit_code is None and outcome.signal is None):
        return None

    wrapped = wall_time_limit > 0
    exit_code = outcome.exit_code
    term_signal = outcome.signal
    if wrapped and exit_code is not None and exit_code > SIGNAL_STATUS_BASE:
        term_signal = exit_code - SIGNAL_STATUS_BASE
        exit_code = None

    # Some timeout(1) implementations deliver SIGKILL to their own process
    # group on expiry and die with it instead of exiting with the sentinel.
    timed_out = (
        wrapped
        and term_signal == signal.SIGKILL
        and outcome.wall_time >= wall_time_limit
    )

    return TerminationDescriptor(
        exit_code=exit_code,
        signal=term_signal,
        cpu_time=outcome.cpu_time or 0.0,
        wall_time=outcome.wall_time,
        max_rss=outcome.max_rss or 0,
        timed_out=timed_out,
    )


class JailsBackend(SandboxBackend):
    """Run programs in a FreeBSD jail limited with rctl."""

    name = "jails"
    limit_signal = signal.SIGSEGV
    timeout_sentinel = SANDBOX_DEFAULTS.timeout_sentinel

    def __init__(self, box_id: int, tools: ToolDefaults = TOOL_DEFAULTS):
        super().__init__(box_id)
        self.tools = tools

    @property
    def rctl_target(self) -> str:
        return f"jail:{self.box_name}"

    def init(self, config: SandboxConfig) -> str:
        path = os.path.join(tempfile.gettempdir(), self.box_name)
        os.mkdir(path)
        self.path = path

        check_command([
            self.tools.jail, "-c",
            f"name={self.box_name}",
            f"path={path}",
            *jail_network_params(config),
            "persist",
        ])
        for rule in rctl_rules(config):
            check_command([self.tools.rctl, "-a", f"{self.rctl_target}:{rule}"])
        return path

    def build_run_command(self, config: SandboxConfig, command: str, args: Sequence[str]) -> List[str]:
        argv = jail_run_wrappers(config, self.tools)
        argv.extend([self.tools.jexec, self.box_name, "/" + command.lstrip("/")])
        argv.extend(args)
        return argv

    def run(
        self,
        config: SandboxConfig,
        command: str,
        args: Sequence[str] = (),
        environ: Optional[Mapping[str, str]] = None,
    ) -> ExecutionResult:
        environ = os.environ if environ is None else environ
        argv = self.build_run_command(config, command, args)
        # jexec without -l passes our environment through to the program.
        outcome = exec_command(argv, env=resolve_environment(config, environ))
        descriptor = descriptor_from_outcome(outcome, config.wall_time_limit)
        return interpret(
            descriptor,
            outcome.stdout,
            outcome.stderr,
            config,
            limit_signal=self.limit_signal,
            timeout_sentinel=self.timeout_sentinel if config.wall_time_limit > 0 else None,
        )

    def cleanup(self) -> None:
        check_command([self.tools.rctl, "-r", self.rctl_target])
        check_command([self.tools.jail, "-r", self.box_name])
        if self.path is not None:
            shutil.rmtree(self.path)
