"""
The Sandbox lifecycle object.

A Sandbox is bound to one backend, chosen from the host platform when it is
constructed, and moves through UNINITIALIZED -> INITIALIZED -> TORN_DOWN.
"""
import logging
import os
from enum import Enum
from typing import Mapping, Optional, Sequence

from boxrun.exceptions import SandboxStateError
from boxrun.observability.metrics import (
    RunTimer,
    record_sandbox_cleaned_up,
    record_sandbox_cleanup_failed,
    record_sandbox_init_failed,
    record_sandbox_initialized,
)
from boxrun.sandbox.base import (
    ExecutionResult,
    SandboxBackend,
    SandboxConfig,
    default_config,
)
from boxrun.sandbox.factory import create_backend

logger = logging.getLogger(__name__)


class SandboxState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    # init() raised; only cleanup() is allowed, to reclaim what was created.
    FAILED = "failed"
    TORN_DOWN = "torn_down"


class Sandbox:
    """An isolated execution context for one program at a time.

    Args:
        box_id: Caller-chosen id. Must be unique among live sandboxes; every
            OS-visible name the backend creates is derived from it.
        config: Limits and environment policy. Defaults to default_config().
        platform: Overrides sys.platform when picking the backend.
        backend: Use this backend instead of picking one by platform.

    Raises:
        UnsupportedPlatformError: If no backend exists for the platform.

    Example:
        with Sandbox(3, SandboxConfig(wall_time_limit=2)) as box:
            shutil.copy("a.out", os.path.join(box.path, "prog"))
            result = box.run("prog")
    """

    def __init__(
        self,
        box_id: int,
        config: Optional[SandboxConfig] = None,
        platform: Optional[str] = None,
        backend: Optional[SandboxBackend] = None,
    ):
        self.box_id = box_id
        self._config = config if config is not None else default_config()
        self._backend = backend if backend is not None else create_backend(box_id, platform)
        self._state = SandboxState.UNINITIALIZED
        self.path: Optional[str] = None

    @property
    def config(self) -> SandboxConfig:
        """The configuration. After init() this is a copy; changes have no effect."""
        if self._state == SandboxState.UNINITIALIZED:
            return self._config
        return self._config.copy()

    @config.setter
    def config(self, config: SandboxConfig) -> None:
        if self._state != SandboxState.UNINITIALIZED:
            raise SandboxStateError(self.box_id, self._state.value, "reconfigure")
        self._config = config

    @property
    def backend(self) -> SandboxBackend:
        return self._backend

    @property
    def state(self) -> SandboxState:
        return self._state

    def _require(self, operation: str, *states: SandboxState) -> None:
        if self._state not in states:
            raise SandboxStateError(self.box_id, self._state.value, operation)

    def init(self) -> None:
        """Create the sandbox root and namespace and apply static limits."""
        self._require("init", SandboxState.UNINITIALIZED)
        frozen = self._config.copy()
        try:
            path = self._backend.init(frozen)
        except Exception:
            self._state = SandboxState.FAILED
            self.path = self._backend.path
            record_sandbox_init_failed(self._backend.name)
            raise
        self._config = frozen
        self.path = path
        self._state = SandboxState.INITIALIZED
        record_sandbox_initialized(self._backend.name)
        logger.info(f"Sandbox {self.box_id} initialized at {path} ({self._backend.name})")

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        environ: Optional[Mapping[str, str]] = None,
    ) -> ExecutionResult:
        """Run a staged program inside the sandbox.

        Args:
            command: Path of the program relative to the sandbox root.
            args: Arguments passed to the program.
            environ: The invoking environment used for inheritance. Defaults
                to os.environ.

        Returns:
            ExecutionResult. Every way the program can end, limit violations
            included, is reported through its outcome.

        Raises:
            SandboxStateError: If the sandbox is not initialized.
            SpawnError: If the backend's tool could not be started.
        """
        self._require("run", SandboxState.INITIALIZED)
        environ = os.environ if environ is None else environ
        with RunTimer(self._backend.name) as timer:
            result = self._backend.run(self._config, command, args, environ)
            timer.set_result(result)
        logger.debug(
            f"Sandbox {self.box_id} ran {command}: {result.outcome.value} "
            f"(exit={result.exit_code}, signal={result.signal_name}, "
            f"wall={result.wall_time:.3f}s, cpu={result.cpu_time:.3f}s, mem={result.memory_used}K)"
        )
        return result

    def cleanup(self) -> None:
        """Remove rules, destroy the namespace and delete the sandbox root.

        Stops at the first failing step and raises its error; the later steps
        are not attempted, so OS resources may be left behind.
        """
        self._require("cleanup", SandboxState.INITIALIZED, SandboxState.FAILED)
        was_active = self._state == SandboxState.INITIALIZED
        self._state = SandboxState.TORN_DOWN
        try:
            self._backend.cleanup()
        except Exception:
            logger.warning(
                f"Cleanup of sandbox {self.box_id} aborted; its namespace and {self.path} may be leaked"
            )
            record_sandbox_cleanup_failed(self._backend.name, was_active)
            raise
        record_sandbox_cleaned_up(self._backend.name, was_active)
        logger.info(f"Sandbox {self.box_id} cleaned up")

    def __enter__(self) -> "Sandbox":
        try:
            self.init()
        except Exception:
            # __exit__ is not called when __enter__ raises.
            if self._state == SandboxState.FAILED:
                self._cleanup_quietly()
            raise
        return self

    def _cleanup_quietly(self) -> None:
        try:
            self.cleanup()
        except Exception as e:
            logger.error(f"Cleanup of sandbox {self.box_id} failed: {e}")

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._state == SandboxState.TORN_DOWN:
            return
        if exc_type is None:
            self.cleanup()
            return
        # Don't let a teardown error hide the one already propagating.
        self._cleanup_quietly()

    def __repr__(self) -> str:
        return f"Sandbox(box_id={self.box_id}, backend={self._backend.name!r}, state={self._state.value})"
