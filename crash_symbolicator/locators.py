"""Discovery of the DWARF artifact inside a dSYM bundle and of the atos tool.

Both locators hold an ordered list of strategies; the first one that finds
something wins. Neither raises: "not found" is ``None``.
"""
from __future__ import annotations

import os
import threading
from typing import Callable, Dict, Iterable, List, Optional

__all__ = [
    "ArtifactLocator",
    "ToolLocator",
    "DEFAULT_ATOS_PATHS",
    "DSYM_SUFFIXES",
    "DWARF_SUBDIR",
    "artifact_base_name",
    "find_in_dwarf_dir",
]

DWARF_SUBDIR = os.path.join("Contents", "Resources", "DWARF")

# Checked in order; ".dSYM" last so "libfoo.dylib.dSYM" keeps its ".dylib"
DSYM_SUFFIXES = [".app.dSYM", ".appex.dSYM", ".framework.dSYM", ".dSYM"]

DEFAULT_ATOS_PATHS = [
    "/usr/bin/atos",
    "/usr/local/bin/atos",
    "/opt/homebrew/bin/atos",
]

ArtifactStrategy = Callable[[str], Optional[str]]


def artifact_base_name(bundle_path: str, suffixes: Iterable[str] = DSYM_SUFFIXES) -> str:
    """Name the DWARF file inside a bundle is expected to have.

    >>> artifact_base_name("/tmp/Factory-Online.app.dSYM")
    'Factory-Online'
    """
    name = os.path.basename(os.path.normpath(bundle_path))
    for suffix in suffixes:
        if name.endswith(suffix) and len(name) > len(suffix):
            return name[:-len(suffix)]
    return name


def find_in_dwarf_dir(bundle_path: str) -> Optional[str]:
    """Return <bundle>/Contents/Resources/DWARF/<base name> if it is listed there."""
    dwarf_dir = os.path.join(bundle_path, DWARF_SUBDIR)
    try:
        entries = os.listdir(dwarf_dir)
    except OSError:
        return None
    expected = artifact_base_name(bundle_path)
    for entry in entries:
        if entry == expected:
            return os.path.abspath(os.path.join(dwarf_dir, entry))
    return None


class ArtifactLocator:
    """Finds the binary-matching debug artifact inside a debug bundle."""

    def __init__(self, strategies: Optional[List[ArtifactStrategy]] = None):
        self.strategies = list(strategies) if strategies is not None else [find_in_dwarf_dir]

    def locate(self, bundle_path: str) -> Optional[str]:
        if not bundle_path:
            return None
        for strategy in self.strategies:
            found = strategy(bundle_path)
            if found:
                return found
        return None


class ToolLocator:
    """Finds the external symbolication executable among fixed install paths."""

    def __init__(self, candidates: Optional[List[str]] = None, preferred: Optional[str] = None):
        paths = list(candidates) if candidates is not None else list(DEFAULT_ATOS_PATHS)
        if preferred:
            paths.insert(0, preferred)
        self.candidates = paths
        self._cache: Dict[str, Optional[str]] = {}
        self._lock = threading.Lock()

    def locate(self) -> Optional[str]:
        with self._lock:
            if "path" not in self._cache:
                self._cache["path"] = self._find()
            return self._cache["path"]

    def _find(self) -> Optional[str]:
        for path in self.candidates:
            if os.path.exists(path):
                return os.path.abspath(path)
        return None
