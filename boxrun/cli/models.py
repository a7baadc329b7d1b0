"""
Pydantic models for the JSON documents the CLI prints.
"""
from pydantic import BaseModel, Field
from typing import Dict, Optional

from boxrun.sandbox.base import ExecutionResult, TerminationOutcome


class RunReport(BaseModel):
    box_id: int
    backend: str
    outcome: TerminationOutcome
    exit_code: Optional[int] = None
    signal: Optional[int] = None
    signal_name: Optional[str] = None
    cpu_time: float = Field(0.0, description="User plus system CPU seconds")
    wall_time: float = Field(0.0, description="Elapsed wall-clock seconds")
    memory_used: int = Field(0, description="Peak resident memory in KB")
    stdout: str = ""
    stderr: str = ""

    @classmethod
    def from_result(cls, box_id: int, backend: str, result: ExecutionResult) -> "RunReport":
        return cls(
            box_id=box_id,
            backend=backend,
            outcome=result.outcome,
            exit_code=result.exit_code,
            signal=result.signal,
            signal_name=result.signal_name,
            cpu_time=result.cpu_time,
            wall_time=result.wall_time,
            memory_used=result.memory_used,
            stdout=result.stdout,
            stderr=result.stderr,
        )


class HostInfo(BaseModel):
    platform: str
    supported: bool
    backend: Optional[str] = None
    tools: Dict[str, bool] = Field(default_factory=dict, description="Tool path -> executable")
