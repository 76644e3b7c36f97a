"""Substitution of resolved symbols back into the crash text."""
from __future__ import annotations

from typing import Sequence

from .models import ResolvedRecord

__all__ = ["rewrite_crash_text", "rewrite_by_replacement"]


def rewrite_crash_text(original_text: str, resolved: Sequence[ResolvedRecord]) -> str:
    """Replace each record's span of ``original_text`` with its resolved text.

    Spans refer to the pristine original. They are applied right-to-left so
    earlier offsets stay valid, which also keeps two identical matches at
    different positions independent of each other.

    Raises ValueError if a record has no span, if its span does not select its
    ``original_line`` or if two spans overlap.
    """
    ordered = sorted(resolved, key=lambda r: _span_of(r)[0])

    previous_end = -1
    for record in ordered:
        start, end = _span_of(record)
        if start < previous_end:
            raise ValueError(f"Overlapping spans at offset {start}")
        if original_text[start:end] != record.original_line:
            raise ValueError(
                f"Span {start}:{end} does not match {record.original_line!r}"
            )
        previous_end = end

    text = original_text
    for record in reversed(ordered):
        start, end = _span_of(record)
        text = text[:start] + record.resolved_text + text[end:]
    return text


def rewrite_by_replacement(original_text: str, resolved: Sequence[ResolvedRecord]) -> str:
    """Sequential global replace over the accumulated text.

    Each replacement sees the output of the previous one, so when two records
    share the same ``original_line`` the first consumes every occurrence.
    Use this only for records that carry no span.
    """
    text = original_text
    for record in resolved:
        if record.original_line:
            text = text.replace(record.original_line, record.resolved_text)
    return text


def _span_of(record: ResolvedRecord):
    if record.span is None:
        raise ValueError(f"Record {record.original_line!r} has no span")
    return record.span
