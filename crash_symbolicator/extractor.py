"""Address extraction from unstructured crash text.

Apple crash reports list frames as::

    3   App    0x0000000103450b5c 0x0000000102514000 + 1000

The address to resolve is the first hex token; the decimal token that follows
it on the same line is the offset of that address inside its image.
"""
from __future__ import annotations

import re
from typing import List

from .models import UINT64_MAX, AddressRecord

__all__ = ["ADDRESS_PATTERN", "MAX_GAP", "AddressExtractor", "extract_addresses"]

# Hex token, then (same line, within MAX_GAP characters) a decimal integer
# that is a token of its own. The lookarounds keep the "0" of a following
# "0x..." from counting as the offset.
MAX_GAP = 256
ADDRESS_PATTERN = re.compile(
    r'(0x[0-9a-fA-F]+)[^\n]{0,%d}?(?<![0-9A-Za-z_])([0-9]+)(?![0-9A-Za-z_])' % MAX_GAP
)


class AddressExtractor:
    """Scans crash text and produces AddressRecords in order of appearance."""

    def __init__(self, pattern: "re.Pattern[str]" = ADDRESS_PATTERN):
        self.pattern = pattern

    def extract(self, text: str) -> List[AddressRecord]:
        records = []
        for match in self.pattern.finditer(text):
            token = match.group(1)
            records.append(AddressRecord(
                original_line=match.group(0),
                address=int(token[2:], 16),
                offset=self._parse_offset(match.group(2)),
                address_token=token,
                span=match.span(),
            ))
        return records

    @staticmethod
    def _parse_offset(value: str) -> int:
        """Decimal offset as an integer; anything outside uint64 falls back to 0."""
        try:
            offset = int(value, 10)
        except ValueError:
            return 0
        if offset > UINT64_MAX:
            return 0
        return offset


def extract_addresses(text: str) -> List[AddressRecord]:
    """Convenience wrapper around :meth:`AddressExtractor.extract`."""
    return AddressExtractor().extract(text)
