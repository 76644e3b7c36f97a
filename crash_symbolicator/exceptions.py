"""Exception hierarchy for the crash symbolicator.

Only failures that abort a whole run (or that cross the backend seam) are
exceptions. Per-address problems are reported as FailureKind values on a
Resolution, see models.py.
"""

__all__ = [
    "SymbolicatorError",
    "FileReadError",
    "BackendError",
    "ProcessInvocationError",
    "OutputDecodeError",
    "SymbolicationCancelled",
]


class SymbolicatorError(Exception):
    """Root exception for all crash symbolicator errors."""


class FileReadError(SymbolicatorError):
    """Raised when the crash file cannot be read or decoded. Fatal for the run."""


# ── Resolver backends ─────────────────────────────────────────────────────────

class BackendError(SymbolicatorError):
    """Base class for errors raised by a resolver backend."""


class ProcessInvocationError(BackendError):
    """Raised when the external tool cannot be spawned, times out or fails."""


class OutputDecodeError(BackendError):
    """Raised when the external tool output cannot be decoded or matched up."""


# ── Pipeline ──────────────────────────────────────────────────────────────────

class SymbolicationCancelled(SymbolicatorError):
    """Raised when a running symbolication is cancelled by its caller."""
