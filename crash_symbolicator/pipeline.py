"""Symbolication pipeline: read → extract → resolve → rewrite.

Only reading the crash file can fail the whole run (FileReadError). Every
address-level problem ends up as inline text at the address's position.
"""
from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

from .backends import AtosBackend
from .config import Settings
from .exceptions import FileReadError, SymbolicationCancelled
from .extractor import AddressExtractor
from .locators import ToolLocator
from .models import AddressRecord, Resolution
from .resolver import SymbolResolver
from .rewriter import rewrite_crash_text
from .utils import safe_print

__all__ = ["SymbolicationPipeline", "read_crash_text"]

ProgressCallback = Callable[[str, int, int], None]


def read_crash_text(crash_file_path: str) -> str:
    """Read the crash report as UTF-8 text."""
    try:
        with open(crash_file_path, 'r', encoding='utf-8', newline='') as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise FileReadError(f"Error reading the crash file {crash_file_path}: {e}") from e


class SymbolicationPipeline:
    """Wires extractor, resolver and rewriter together."""

    VERBOSE = False

    def __init__(self, resolver: Optional[SymbolResolver] = None,
                 extractor: Optional[AddressExtractor] = None,
                 max_workers: int = 4,
                 batch: bool = False,
                 progress_callback: Optional[ProgressCallback] = None,
                 abort_check: Optional[Callable[[], bool]] = None,
                 verbose: Optional[bool] = None):
        """
        Args:
            resolver: SymbolResolver to use. Defaults to atos at the standard paths.
            extractor: AddressExtractor to use.
            max_workers: Size of the resolution thread pool; 1 resolves sequentially.
            batch: Send addresses sharing a load address to atos in one call.
            progress_callback: Called as (message, current, total) while resolving.
            abort_check: Polled before each resolution; returning True cancels the run.
        """
        self.resolver = resolver or SymbolResolver()
        self.extractor = extractor or AddressExtractor()
        self.max_workers = max(1, int(max_workers))
        self.batch = batch
        self.progress_callback = progress_callback
        self.abort_check = abort_check
        self.verbose = self.VERBOSE if verbose is None else verbose

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "SymbolicationPipeline":
        def backend_factory(tool_path: str) -> AtosBackend:
            return AtosBackend(tool_path, timeout=settings.timeout, arch=settings.arch)

        resolver = SymbolResolver(
            tool_locator=ToolLocator(preferred=settings.atos_path),
            backend_factory=backend_factory,
            verbose=settings.verbose,
        )
        return cls(
            resolver=resolver,
            max_workers=settings.max_workers,
            batch=settings.batch,
            verbose=settings.verbose,
            **kwargs,
        )

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        self.progress_callback = callback

    def set_abort_check(self, check: Optional[Callable[[], bool]]) -> None:
        self.abort_check = check

    def _log(self, message: str):
        if self.verbose:
            safe_print(f"[SYMBOLICATE] {message}")

    def _report_progress(self, message: str, current: int = 0, total: int = 0):
        """Report progress to callback if available."""
        if self.progress_callback:
            try:
                self.progress_callback(message, current, total)
            except Exception:
                pass

    def _check_abort(self):
        if self.abort_check and self.abort_check():
            raise SymbolicationCancelled("Symbolication cancelled")

    # ── Stages ──────────────────────────────────────────────────────────────

    def extract(self, text: str) -> List[AddressRecord]:
        return self.extractor.extract(text)

    def resolve_all(self, records: Sequence[AddressRecord], bundle_path: str) -> List[Resolution]:
        """Resolve every record, keeping extraction order in the result."""
        total = len(records)
        if not total:
            return []

        self._check_abort()
        completed = [0]
        lock = threading.Lock()

        def mark_done(resolution: Resolution):
            with lock:
                completed[0] += 1
                done = completed[0]
            self._report_progress(
                f"Resolved {done}/{total}: {resolution.record.address_token}", done, total)

        if self.batch:
            return self.resolver.resolve_many(
                records, bundle_path, checkpoint=self._check_abort, on_resolved=mark_done)

        def resolve_one(record: AddressRecord) -> Resolution:
            self._check_abort()
            resolution = self.resolver.resolve(record, bundle_path)
            mark_done(resolution)
            return resolution

        if self.max_workers == 1 or total == 1:
            return [resolve_one(record) for record in records]

        with ThreadPoolExecutor(max_workers=min(self.max_workers, total)) as executor:
            return list(executor.map(resolve_one, records))

    def symbolicate_text(self, text: str, bundle_path: str) -> str:
        """Run extract, resolve and rewrite over crash text already in memory."""
        records = self.extract(text)
        self._log(f"Extracted {len(records)} addresses")
        if not records:
            return text

        resolutions = self.resolve_all(records, bundle_path)
        failed = sum(1 for r in resolutions if not r.success)
        self._log(f"Resolved {len(resolutions) - failed}/{len(resolutions)} addresses")

        return rewrite_crash_text(text, [r.to_resolved_record() for r in resolutions])

    def run(self, crash_file_path: str, bundle_path: str) -> str:
        """Symbolicate the crash file against the dSYM bundle and return the text."""
        text = read_crash_text(crash_file_path)
        self._log(f"Read {len(text)} characters from {crash_file_path}")
        return self.symbolicate_text(text, bundle_path)
