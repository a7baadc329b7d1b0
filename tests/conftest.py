"""
Shared test fixtures for boxrun tests.
"""
import os
import shutil

import pytest

from boxrun.sandbox.base import (
    ExecutionResult,
    SandboxBackend,
    TerminationOutcome,
)


class FakeBackend(SandboxBackend):
    """Backend that records calls and keeps its root under a temp directory."""

    name = "fake"

    def __init__(self, box_id, root, result=None, fail_init=None, fail_cleanup=None):
        super().__init__(box_id)
        self.root = root
        self.result = result or ExecutionResult(exit_code=0, outcome=TerminationOutcome.SUCCESS)
        self.fail_init = fail_init
        self.fail_cleanup = fail_cleanup
        self.calls = []

    def init(self, config):
        self.calls.append(("init", config))
        path = os.path.join(self.root, self.box_name)
        os.mkdir(path)
        self.path = path
        # Fails after creating the root, like a jail whose rctl rule is rejected.
        if self.fail_init is not None:
            raise self.fail_init
        return path

    def run(self, config, command, args=(), environ=None):
        self.calls.append(("run", config, command, tuple(args), environ))
        return self.result

    def cleanup(self):
        self.calls.append(("cleanup",))
        if self.fail_cleanup is not None:
            raise self.fail_cleanup
        shutil.rmtree(self.path)


@pytest.fixture
def fake_backend(tmp_path):
    def _make(box_id=0, **kwargs):
        return FakeBackend(box_id, str(tmp_path), **kwargs)
    return _make


@pytest.fixture
def fake_rusage():
    class Rusage:
        ru_utime = 0.25
        ru_stime = 0.05
        ru_maxrss = 2048
    return Rusage()
