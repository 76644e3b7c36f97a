"""Resolver backends.

A backend is any callable ``(artifact_path, base_address, address) -> str``
that returns the raw symbol text for one address and raises a BackendError
subclass when it cannot. SymbolResolver builds one per located tool path
through a ``backend_factory(tool_path)``, so tests can hand in a stub.

AtosBackend drives Apple's ``atos``::

    atos -o App.app.dSYM/Contents/Resources/DWARF/App -l 0x102514000 0x0000000103450b5c
"""
from __future__ import annotations

import subprocess
from typing import Callable, List, Optional, Sequence

from .exceptions import OutputDecodeError, ProcessInvocationError
from .utils import format_address

__all__ = ["Backend", "BackendFactory", "AtosBackend"]

Backend = Callable[[str, int, str], str]
BackendFactory = Callable[[str], Backend]


class AtosBackend:
    """Runs atos as a subprocess, one invocation per call."""

    DEFAULT_TIMEOUT = 30.0

    def __init__(self, tool_path: str, timeout: Optional[float] = DEFAULT_TIMEOUT,
                 arch: Optional[str] = None):
        self.tool_path = tool_path
        self.timeout = timeout
        self.arch = arch

    def build_command(self, artifact_path: str, base_address: int,
                      addresses: Sequence[str]) -> List[str]:
        cmd = [self.tool_path, "-o", artifact_path]
        if self.arch:
            cmd += ["-arch", self.arch]
        cmd += ["-l", format_address(base_address)]
        cmd.extend(addresses)
        return cmd

    def __call__(self, artifact_path: str, base_address: int, address: str) -> str:
        return self._run(self.build_command(artifact_path, base_address, [address]), address)

    def symbolicate_many(self, artifact_path: str, base_address: int,
                         addresses: Sequence[str]) -> List[str]:
        """Resolve several addresses sharing one load address in a single call.

        atos answers with one line per address, in argument order.
        """
        if not addresses:
            return []
        label = ", ".join(addresses)
        output = self._run(self.build_command(artifact_path, base_address, addresses), label)
        lines = output.strip().splitlines()
        if len(lines) != len(addresses):
            raise OutputDecodeError(
                f"atos returned {len(lines)} lines for {len(addresses)} addresses"
            )
        return lines

    def _run(self, cmd: List[str], label: str) -> str:
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ProcessInvocationError(
                f"atos timed out after {self.timeout} seconds for address: {label}"
            ) from e
        except (OSError, subprocess.SubprocessError) as e:
            raise ProcessInvocationError(f"Could not run {self.tool_path}: {e}") from e

        if result.returncode != 0 and not result.stdout:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise ProcessInvocationError(
                f"atos exited with status {result.returncode} for address: {label}: {stderr[:200]}"
            )

        try:
            return result.stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            raise OutputDecodeError(f"atos output is not UTF-8 for address: {label}") from e
