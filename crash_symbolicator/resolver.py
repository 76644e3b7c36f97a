"""Per-address symbol resolution.

SymbolResolver turns one AddressRecord into a Resolution. Every step has its
own failure kind and none of them aborts the batch:

1. locate the DWARF artifact in the dSYM bundle
2. locate the atos executable
3. validate address/offset as uint64 and compute the load address
4. run the backend and trim its output

Located paths and backends are cached, so a resolver can be shared by the
worker threads of one pipeline run.
"""
from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from .backends import AtosBackend, Backend, BackendFactory
from .exceptions import BackendError, OutputDecodeError
from .locators import ArtifactLocator, ToolLocator
from .models import UINT64_MAX, AddressRecord, FailureKind, Resolution
from .utils import format_address, safe_print

__all__ = ["SymbolResolver"]


class _Job:
    """A record that passed every check and is ready for the backend."""
    __slots__ = ("record", "artifact_path", "base_address", "backend")

    def __init__(self, record: AddressRecord, artifact_path: str,
                 base_address: int, backend: Backend):
        self.record = record
        self.artifact_path = artifact_path
        self.base_address = base_address
        self.backend = backend


class SymbolResolver:
    """Resolves AddressRecords against a dSYM bundle through an external tool."""

    VERBOSE = False

    def __init__(self, artifact_locator: Optional[ArtifactLocator] = None,
                 tool_locator: Optional[ToolLocator] = None,
                 backend_factory: Optional[BackendFactory] = None,
                 verbose: Optional[bool] = None):
        self.artifact_locator = artifact_locator or ArtifactLocator()
        self.tool_locator = tool_locator or ToolLocator()
        self.backend_factory = backend_factory or AtosBackend
        self.verbose = self.VERBOSE if verbose is None else verbose
        self._artifact_cache: Dict[str, Optional[str]] = {}
        self._backends: Dict[str, Backend] = {}
        self._lock = threading.Lock()

        self.stats = {
            'resolved': 0,
            'failed': 0,
            'invocations': 0,
        }

    def _log(self, message: str):
        """Log a message if verbose mode is enabled."""
        if self.verbose:
            safe_print(f"[ATOS] {message}")

    # ── Cached lookups ──────────────────────────────────────────────────────

    def locate_artifact(self, bundle_path: str) -> Optional[str]:
        with self._lock:
            if bundle_path not in self._artifact_cache:
                found = self.artifact_locator.locate(bundle_path)
                self._artifact_cache[bundle_path] = found
                if found:
                    self._log(f"DWARF artifact: {found}")
                else:
                    self._log(f"No DWARF artifact in {bundle_path}")
            return self._artifact_cache[bundle_path]

    def locate_tool(self) -> Optional[str]:
        return self.tool_locator.locate()

    def _backend_for(self, tool_path: str) -> Backend:
        with self._lock:
            backend = self._backends.get(tool_path)
            if backend is None:
                backend = self.backend_factory(tool_path)
                self._backends[tool_path] = backend
            return backend

    # ── Resolution ──────────────────────────────────────────────────────────

    def _prepare(self, record: AddressRecord, bundle_path: str) -> Union[Resolution, _Job]:
        artifact_path = self.locate_artifact(bundle_path)
        if not artifact_path:
            return Resolution.failed(record, FailureKind.ARTIFACT_NOT_FOUND)

        tool_path = self.locate_tool()
        if not tool_path:
            return Resolution.failed(record, FailureKind.TOOL_NOT_FOUND)

        if not (0 <= record.address <= UINT64_MAX and 0 <= record.offset <= UINT64_MAX):
            return Resolution.failed(record, FailureKind.INVALID_ADDRESS)
        base_address = record.base_address
        if base_address is None:
            self._log(f"Offset 0x{record.offset:x} exceeds address {record.address_token}")
            return Resolution.failed(record, FailureKind.INVALID_ADDRESS)

        return _Job(record, artifact_path, base_address, self._backend_for(tool_path))

    def _invoke(self, job: _Job) -> Resolution:
        record = job.record
        self._count('invocations')
        try:
            output = job.backend(job.artifact_path, job.base_address, record.address_token)
        except OutputDecodeError as e:
            self._log(str(e))
            return self._failed(record, FailureKind.OUTPUT_DECODE, job.base_address)
        except BackendError as e:
            self._log(str(e))
            return self._failed(record, FailureKind.PROCESS_INVOCATION, job.base_address)
        self._count('resolved')
        return Resolution.resolved(record, output.strip(), job.base_address)

    def resolve(self, record: AddressRecord, bundle_path: str) -> Resolution:
        """Resolve one record. Never raises for per-address problems."""
        prepared = self._prepare(record, bundle_path)
        if isinstance(prepared, Resolution):
            self._count('failed')
            return prepared
        self._log(f"{record.address_token} -l {format_address(prepared.base_address)}")
        return self._invoke(prepared)

    def resolve_many(self, records: Sequence[AddressRecord], bundle_path: str,
                     checkpoint: Optional[Callable[[], None]] = None,
                     on_resolved: Optional[Callable[[Resolution], None]] = None) -> List[Resolution]:
        """Resolve records, sending addresses that share a load address to the
        backend in one invocation when it supports ``symbolicate_many``.

        Falls back to one invocation per record if a batch call fails.

        Args:
            checkpoint: Called before every backend invocation (batch or
                single). It may raise to stop the run.
            on_resolved: Called with each Resolution as soon as it is known.
        """
        results: List[Optional[Resolution]] = [None] * len(records)
        groups: "OrderedDict[Tuple[int, str, int], List[Tuple[int, _Job]]]" = OrderedDict()

        def done(index: int, resolution: Resolution):
            results[index] = resolution
            if on_resolved:
                on_resolved(resolution)

        def invoke(index: int, job: _Job):
            if checkpoint:
                checkpoint()
            done(index, self._invoke(job))

        for index, record in enumerate(records):
            prepared = self._prepare(record, bundle_path)
            if isinstance(prepared, Resolution):
                self._count('failed')
                done(index, prepared)
                continue
            key = (id(prepared.backend), prepared.artifact_path, prepared.base_address)
            groups.setdefault(key, []).append((index, prepared))

        for (_, artifact_path, base_address), members in groups.items():
            backend = members[0][1].backend
            batch = getattr(backend, "symbolicate_many", None)
            if batch is None or len(members) == 1:
                for index, job in members:
                    invoke(index, job)
                continue

            if checkpoint:
                checkpoint()
            tokens = [job.record.address_token for _, job in members]
            self._log(f"Batch of {len(tokens)} addresses -l {format_address(base_address)}")
            self._count('invocations')
            try:
                lines = batch(artifact_path, base_address, tokens)
            except BackendError as e:
                self._log(f"Batch failed ({e}), resolving one by one")
                for index, job in members:
                    invoke(index, job)
                continue

            for (index, job), line in zip(members, lines):
                self._count('resolved')
                done(index, Resolution.resolved(job.record, line.strip(), base_address))

        return results  # type: ignore[return-value]

    def _failed(self, record: AddressRecord, failure: FailureKind,
                base_address: Optional[int]) -> Resolution:
        self._count('failed')
        return Resolution.failed(record, failure, base_address)

    def _count(self, key: str):
        with self._lock:
            self.stats[key] += 1

    def get_statistics(self) -> Dict[str, int]:
        with self._lock:
            return dict(self.stats)
