"""
Process-spawn helper shared by the sandbox backends.

Runs one external command to completion, keeps its whole stdout/stderr in
memory and reports how it terminated. A command that cannot be started is an
error; a command that ran and failed is not.
"""
import logging
import os
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence

from boxrun.exceptions import SpawnError, BackendCommandError

logger = logging.getLogger(__name__)


@dataclass
class ProcessOutcome:
    stdout: str
    stderr: str
    exit_code: Optional[int]
    signal: Optional[int]
    rusage: Optional[Any]
    wall_time: float

    @property
    def signaled(self) -> bool:
        return self.signal is not None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and self.signal is None

    @property
    def cpu_time(self) -> Optional[float]:
        """User plus system seconds, including waited-for descendants."""
        if self.rusage is None:
            return None
        return self.rusage.ru_utime + self.rusage.ru_stime

    @property
    def max_rss(self) -> Optional[int]:
        """Peak resident set size in KB."""
        if self.rusage is None:
            return None
        return int(self.rusage.ru_maxrss)


def _drain(stream, sink: List[bytes]) -> None:
    try:
        sink.append(stream.read())
    finally:
        stream.close()


def _decode_status(status: int):
    if os.WIFSIGNALED(status):
        return None, os.WTERMSIG(status)
    if os.WIFEXITED(status):
        return os.WEXITSTATUS(status), None
    return None, None


def exec_command(
    argv: Sequence[str],
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[str] = None,
) -> ProcessOutcome:
    """Run a command and wait for it.

    Args:
        argv: Program and arguments. The program is looked up on PATH.
        env: Environment for the child. Inherits ours when None.
        cwd: Working directory for the child.

    Returns:
        ProcessOutcome with captured output and termination state.

    Raises:
        SpawnError: If the program could not be started.
    """
    argv = list(argv)
    logger.debug(f"Executing: {' '.join(argv)}")

    start = time.monotonic()
    try:
        process = subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=dict(env) if env is not None else None,
            cwd=cwd,
        )
    except (OSError, ValueError) as e:
        raise SpawnError(argv, str(e)) from e

    out: List[bytes] = []
    err: List[bytes] = []
    readers = [
        threading.Thread(target=_drain, args=(process.stdout, out), daemon=True),
        threading.Thread(target=_drain, args=(process.stderr, err), daemon=True),
    ]
    for reader in readers:
        reader.start()

    # wait4 instead of Popen.wait so the child's resource usage is kept.
    try:
        _, status, rusage = os.wait4(process.pid, 0)
    except BaseException:
        process.kill()
        os.waitpid(process.pid, 0)
        raise
    wall_time = time.monotonic() - start
    exit_code, signal = _decode_status(status)
    process.returncode = exit_code if signal is None else -signal

    for reader in readers:
        reader.join()

    return ProcessOutcome(
        stdout=b"".join(out).decode("utf-8", errors="replace"),
        stderr=b"".join(err).decode("utf-8", errors="replace"),
        exit_code=exit_code,
        signal=signal,
        rusage=rusage,
        wall_time=wall_time,
    )


def check_command(
    argv: Sequence[str],
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[str] = None,
) -> ProcessOutcome:
    """Run a management command, raising BackendCommandError unless it exits 0."""
    outcome = exec_command(argv, env=env, cwd=cwd)
    if not outcome.succeeded:
        exit_code = outcome.exit_code if outcome.exit_code is not None else -(outcome.signal or 0)
        raise BackendCommandError(argv, exit_code, outcome.stderr)
    return outcome
