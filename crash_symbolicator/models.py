"""Data models for the symbolication pipeline.

AddressRecord : one address/offset pair found in the crash text
Resolution    : tagged result of resolving one record (success or failure)
ResolvedRecord: the text that will replace a record in the final output
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

__all__ = [
    "UINT64_MAX",
    "AddressRecord",
    "FailureKind",
    "FAILURE_MESSAGES",
    "Resolution",
    "ResolvedRecord",
]

UINT64_MAX = 0xFFFFFFFFFFFFFFFF


@dataclass(frozen=True)
class AddressRecord:
    """An extracted (address, offset, original text span) triple awaiting resolution."""
    original_line: str          # exact matched substring, used as replacement anchor
    address: int
    offset: int
    address_token: str          # raw hex token, e.g. "0x0000000103450b5c"
    span: Optional[Tuple[int, int]] = None  # position of original_line in the source text

    @property
    def base_address(self) -> Optional[int]:
        """Load address of the module, or None when offset exceeds address."""
        if self.offset > self.address:
            return None
        return self.address - self.offset

    def __str__(self) -> str:
        return f"AddressRecord({self.address_token} offset=0x{self.offset:x})"


class FailureKind(str, Enum):
    """Why a single address could not be resolved."""
    ARTIFACT_NOT_FOUND = "artifact_not_found"
    TOOL_NOT_FOUND = "tool_not_found"
    INVALID_ADDRESS = "invalid_address"
    PROCESS_INVOCATION = "process_invocation"
    OUTPUT_DECODE = "output_decode"


# Inline replacement text for each failure kind. {address} is the raw token.
FAILURE_MESSAGES = {
    FailureKind.ARTIFACT_NOT_FOUND: "DWARF file not found in dSYM",
    FailureKind.TOOL_NOT_FOUND: "atos command not found",
    FailureKind.INVALID_ADDRESS: "Invalid address or offset",
    FailureKind.PROCESS_INVOCATION: "Error running atos command for address: {address}",
    FailureKind.OUTPUT_DECODE: "Error parsing address: {address}",
}


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one AddressRecord.

    Failures stay typed (``failure``) until the rewrite step turns them into
    inline text via :attr:`resolved_text`.
    """
    record: AddressRecord
    success: bool
    symbol: str = ""
    failure: Optional[FailureKind] = None
    error_message: Optional[str] = None
    base_address: Optional[int] = None

    @classmethod
    def resolved(cls, record: AddressRecord, symbol: str, base_address: int) -> "Resolution":
        return cls(record=record, success=True, symbol=symbol, base_address=base_address)

    @classmethod
    def failed(cls, record: AddressRecord, failure: FailureKind,
               base_address: Optional[int] = None) -> "Resolution":
        message = FAILURE_MESSAGES[failure].format(address=record.address_token)
        return cls(
            record=record,
            success=False,
            failure=failure,
            error_message=message,
            base_address=base_address,
        )

    @property
    def resolved_text(self) -> str:
        if not self.success:
            return self.error_message or ""
        # Every match starts with its address token
        line = self.record.original_line
        token = self.record.address_token
        if line.startswith(token):
            return self.symbol + line[len(token):]
        return line.replace(token, self.symbol, 1)

    def to_resolved_record(self) -> "ResolvedRecord":
        return ResolvedRecord(
            original_line=self.record.original_line,
            resolved_text=self.resolved_text,
            span=self.record.span,
        )


@dataclass(frozen=True)
class ResolvedRecord:
    """Replacement text for one matched span of the crash text."""
    original_line: str
    resolved_text: str
    span: Optional[Tuple[int, int]] = None
