"""
Utility functions for boxrun.
"""
from boxrun.utils.process import ProcessOutcome, exec_command, check_command

__all__ = [
    "ProcessOutcome",
    "exec_command",
    "check_command",
]
