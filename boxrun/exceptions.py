"""
Custom exception hierarchy for boxrun.

Only infrastructure failures are raised. Everything the sandboxed program
itself does (crashing, timing out, running out of memory) is reported as a
TerminationOutcome on the returned ExecutionResult.
"""
from typing import Optional, Dict, Any, Sequence


class BoxrunError(Exception):
    """Base exception for all boxrun errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class SandboxError(BoxrunError):
    """Base exception for sandbox lifecycle errors."""
    pass


class BackendError(BoxrunError):
    """Base exception for failures of the underlying isolation tools."""
    pass


class UnsupportedPlatformError(SandboxError):
    def __init__(self, platform: str):
        super().__init__(f"Unsupported platform: {platform}", {"platform": platform})
        self.platform = platform


class SandboxStateError(SandboxError):
    def __init__(self, box_id: int, state: str, operation: str):
        super().__init__(
            f"Cannot {operation} sandbox {box_id} in state {state}",
            {"box_id": box_id, "state": state, "operation": operation},
        )
        self.box_id = box_id
        self.state = state
        self.operation = operation


class SpawnError(BackendError):
    """Raised when a command could not be started at all."""

    def __init__(self, command: Sequence[str], cause: Optional[str] = None):
        message = f"Failed to start command: {command[0] if command else '<empty>'}"
        if cause:
            message = f"{message} - {cause}"
        super().__init__(message, {"command": list(command), "cause": cause})
        self.command = list(command)
        self.cause = cause


class BackendCommandError(BackendError):
    """Raised when a namespace management command exits non-zero."""

    def __init__(self, command: Sequence[str], exit_code: Optional[int], stderr: str = ""):
        details: Dict[str, Any] = {"command": list(command), "exit_code": exit_code}
        if stderr:
            details["stderr"] = stderr.strip()
        super().__init__(f"Command failed: {' '.join(command)}", details)
        self.command = list(command)
        self.exit_code = exit_code
        self.stderr = stderr


class BoxIdExhaustedError(BoxrunError):
    def __init__(self, first: int, count: int):
        super().__init__(
            "No free sandbox ids left",
            {"first": first, "count": count},
        )
        self.first = first
        self.count = count
