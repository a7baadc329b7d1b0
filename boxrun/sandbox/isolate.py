"""
isolate-based sandbox backend (Linux).

Drives the isolate(1) tool: `--init` creates the box, `--run` executes a
program in it with limits given as flags, `--cleanup` destroys it. isolate
enforces CPU and wall time natively and reports the termination state in a
meta file, which this module decodes.
"""
import logging
import os
import signal
import tempfile
from typing import Dict, List, Mapping, Optional, Sequence

from boxrun.config.defaults import SANDBOX_DEFAULTS, TOOL_DEFAULTS, ToolDefaults
from boxrun.exceptions import BackendCommandError
from boxrun.sandbox.base import (
    ExecutionResult,
    SandboxBackend,
    SandboxConfig,
    TerminationDescriptor,
)
from boxrun.sandbox.interpreter import interpret
from boxrun.sandbox.limits import isolate_env_options, isolate_limit_options
from boxrun.utils.process import check_command, exec_command

logger = logging.getLogger(__name__)

# Directory the box is mounted on inside the isolate chroot.
BOX_MOUNT = "/box"

STATUS_TIMEOUT = "TO"
STATUS_INTERNAL_ERROR = "XX"


def parse_meta(text: str) -> Dict[str, str]:
    """Parse isolate's `key:value` meta file format."""
    meta: Dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if sep:
            meta[key.strip()] = value.strip()
    return meta


def descriptor_from_meta(meta: Mapping[str, str]) -> Optional[TerminationDescriptor]:
    """Build a TerminationDescriptor from isolate's meta values.

    Returns None when the meta file is empty, reports an isolate internal
    error or cannot be decoded.
    """
    if not meta or meta.get("status") == STATUS_INTERNAL_ERROR:
        return None
    try:
        term_signal = int(meta["exitsig"]) if "exitsig" in meta else None
        timed_out = meta.get("status") == STATUS_TIMEOUT
        if "exitcode" in meta:
            exit_code: Optional[int] = int(meta["exitcode"])
        elif term_signal is None and not timed_out and meta.get("killed") != "1":
            exit_code = 0
        else:
            exit_code = None
        max_rss = int(meta.get("max-rss") or meta.get("cg-mem") or 0)
        return TerminationDescriptor(
            exit_code=exit_code,
            signal=term_signal,
            cpu_time=float(meta.get("time", 0)),
            wall_time=float(meta.get("time-wall", 0)),
            max_rss=max_rss,
            limit_kill=meta.get("cg-oom-killed") == "1",
            timed_out=timed_out,
        )
    except ValueError as e:
        logger.warning(f"Unreadable isolate meta file: {e}")
        return None


class IsolateBackend(SandboxBackend):
    """Run programs in isolate boxes, one box per sandbox id."""

    name = "isolate"

    def __init__(
        self,
        box_id: int,
        tools: ToolDefaults = TOOL_DEFAULTS,
        use_cgroups: bool = SANDBOX_DEFAULTS.use_cgroups,
    ):
        super().__init__(box_id)
        self.tools = tools
        self.use_cgroups = use_cgroups
        if not use_cgroups:
            # --mem is an address-space rlimit; overrunning it faults the program.
            self.limit_signal = signal.SIGSEGV

    def _base_command(self) -> List[str]:
        argv = [self.tools.isolate, f"--box-id={self.box_id}"]
        if self.use_cgroups:
            argv.append("--cg")
        return argv

    def init(self, config: SandboxConfig) -> str:
        # isolate takes every limit at --run time, there is nothing static.
        argv = self._base_command() + ["--init"]
        outcome = check_command(argv)
        lines = outcome.stdout.strip().splitlines()
        if not lines:
            raise BackendCommandError(argv, outcome.exit_code, "isolate --init did not report a box directory")
        self.path = os.path.join(lines[-1].strip(), "box")
        logger.debug(f"isolate box {self.box_id} rooted at {self.path}")
        return self.path

    def build_run_command(
        self,
        config: SandboxConfig,
        command: str,
        args: Sequence[str],
        environ: Mapping[str, str],
        meta_path: str,
    ) -> List[str]:
        argv = [self.tools.isolate, f"--box-id={self.box_id}", f"--meta={meta_path}", "--silent"]
        argv.extend(isolate_limit_options(config, self.use_cgroups))
        argv.extend(isolate_env_options(config, environ))
        argv.extend(["--run", "--", f"{BOX_MOUNT}/{command.lstrip('/')}"])
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
        fd, meta_path = tempfile.mkstemp(prefix=f"{self.box_name}-", suffix=SANDBOX_DEFAULTS.isolate_meta_suffix)
        os.close(fd)
        try:
            argv = self.build_run_command(config, command, args, environ, meta_path)
            # --full-env hands isolate's own environment to the program.
            outcome = exec_command(argv, env=environ)
            try:
                with open(meta_path, "r") as f:
                    meta = parse_meta(f.read())
            except OSError as e:
                logger.warning(f"Cannot read isolate meta file {meta_path}: {e}")
                meta = {}
        finally:
            try:
                os.unlink(meta_path)
            except OSError:
                pass

        descriptor = descriptor_from_meta(meta)
        if descriptor is None:
            logger.warning(
                f"isolate box {self.box_id} returned no usable termination state "
                f"(exit {outcome.exit_code}): {outcome.stderr.strip() or meta.get('message', '')}"
            )
        return interpret(
            descriptor,
            outcome.stdout,
            outcome.stderr,
            config,
            limit_signal=self.limit_signal,
            timeout_sentinel=self.timeout_sentinel,
        )

    def cleanup(self) -> None:
        check_command(self._base_command() + ["--cleanup"])
