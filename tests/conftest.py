"""Shared fixtures for the crash symbolicator tests."""
import os
import stat
import sys

import pytest

# Add the project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from crash_symbolicator.exceptions import OutputDecodeError


SYMBOL = "foo() (in App) (App.m:42)"


class StubBackend:
    """Deterministic stand-in for atos. Records every call."""

    def __init__(self, output=SYMBOL + "\n", error=None):
        self.output = output
        self.error = error
        self.calls = []

    def __call__(self, artifact_path, base_address, address):
        self.calls.append((artifact_path, base_address, address))
        if self.error is not None:
            raise self.error
        if callable(self.output):
            return self.output(address)
        return self.output


class BatchStubBackend(StubBackend):
    """StubBackend that also answers several addresses per call."""

    def __init__(self, fail_batch=False, **kwargs):
        super().__init__(output=lambda address: f"sym_{address}\n", **kwargs)
        self.fail_batch = fail_batch
        self.batch_calls = []

    def symbolicate_many(self, artifact_path, base_address, addresses):
        self.batch_calls.append((artifact_path, base_address, list(addresses)))
        if self.fail_batch:
            raise OutputDecodeError("line count mismatch")
        return [f"sym_{address}" for address in addresses]


def make_dsym(root, bundle_name="App.app.dSYM", artifact_name="App"):
    """Create <root>/<bundle>/Contents/Resources/DWARF/<artifact> and return the bundle path."""
    bundle = root / bundle_name
    dwarf = bundle / "Contents" / "Resources" / "DWARF"
    dwarf.mkdir(parents=True)
    (dwarf / artifact_name).write_bytes(b"\xcf\xfa\xed\xfe")
    return bundle


def make_script(path, body):
    """Write an executable shell script standing in for atos."""
    path.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


requires_posix_shell = pytest.mark.skipif(
    sys.platform == "win32", reason="fake atos is a POSIX shell script"
)


@pytest.fixture
def dsym_bundle(tmp_path):
    return make_dsym(tmp_path)


@pytest.fixture
def tool_file(tmp_path):
    tool = tmp_path / "bin" / "atos"
    tool.parent.mkdir()
    tool.write_text("", encoding="utf-8")
    return tool
