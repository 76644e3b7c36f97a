"""Crash Symbolicator package.

Resolves the raw addresses in an Apple crash report to function, file and
line using a .dSYM bundle and the atos tool:
- Address/offset extraction from unstructured crash text
- DWARF artifact and atos discovery
- Per-address resolution with typed, non-fatal failures
- Span-based rewriting of the crash text
"""
from .exceptions import (
    SymbolicatorError,
    FileReadError,
    BackendError,
    ProcessInvocationError,
    OutputDecodeError,
    SymbolicationCancelled,
)
from .models import (
    AddressRecord,
    FailureKind,
    Resolution,
    ResolvedRecord,
)
from .extractor import AddressExtractor, extract_addresses
from .locators import ArtifactLocator, ToolLocator
from .backends import AtosBackend
from .resolver import SymbolResolver
from .rewriter import rewrite_crash_text, rewrite_by_replacement
from .config import Settings
from .pipeline import SymbolicationPipeline, read_crash_text

__all__ = [
    # Errors
    "SymbolicatorError",
    "FileReadError",
    "BackendError",
    "ProcessInvocationError",
    "OutputDecodeError",
    "SymbolicationCancelled",
    # Data model
    "AddressRecord",
    "FailureKind",
    "Resolution",
    "ResolvedRecord",
    # Pipeline stages
    "AddressExtractor",
    "extract_addresses",
    "ArtifactLocator",
    "ToolLocator",
    "AtosBackend",
    "SymbolResolver",
    "rewrite_crash_text",
    "rewrite_by_replacement",
    "Settings",
    "SymbolicationPipeline",
    "read_crash_text",
]

__version__ = "1.0.0"
