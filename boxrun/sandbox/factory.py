"""
Backend factory selecting the isolation mechanism for the host platform.
"""
import sys
from typing import Optional

from boxrun.exceptions import UnsupportedPlatformError
from boxrun.sandbox.base import SandboxBackend

SUPPORTED_PLATFORMS = ("linux", "freebsd")


def create_backend(
    box_id: int,
    platform: Optional[str] = None,
    **kwargs,
) -> SandboxBackend:
    platform = platform or sys.platform
    if platform.startswith("linux"):
        from boxrun.sandbox.isolate import IsolateBackend
        return IsolateBackend(box_id, **kwargs)
    elif platform.startswith("freebsd"):
        from boxrun.sandbox.jails import JailsBackend
        return JailsBackend(box_id, **kwargs)
    else:
        raise UnsupportedPlatformError(platform)
