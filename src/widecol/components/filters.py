"""Row filter descriptors.

Filters are plain immutable values. The scan core never inspects them; they
are handed unchanged to the fetch collaborator.

Three categories:
    - Limiting: row key / family / qualifier / value regex, value and
      timestamp ranges, per-row and per-column cell limits, row sampling
    - Modifying: strip values, apply a label
    - Composing: chain (AND), interleave (OR), condition (if/then/else)
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..core.types import as_bytes


@dataclass(frozen=True)
class Chain:
    filters: tuple


@dataclass(frozen=True)
class Interleave:
    filters: tuple


@dataclass(frozen=True)
class Condition:
    predicate: object
    true_filter: object = None
    false_filter: object = None


@dataclass(frozen=True)
class RowKeyRegex:
    pattern: bytes


@dataclass(frozen=True)
class FamilyRegex:
    pattern: str


@dataclass(frozen=True)
class QualifierRegex:
    pattern: bytes


@dataclass(frozen=True)
class ValueRegex:
    pattern: bytes


@dataclass(frozen=True)
class ValueRange:
    """Byte range over cell values; None means unbounded on that side."""

    start: bytes | None = None
    end: bytes | None = None
    start_inclusive: bool = True
    end_inclusive: bool = False


@dataclass(frozen=True)
class TimestampRange:
    """[start, end) in microseconds; None means unbounded on that side."""

    start: int | None = None
    end: int | None = None


@dataclass(frozen=True)
class CellsPerColumnLimit:
    limit: int


@dataclass(frozen=True)
class CellsPerRowLimit:
    limit: int


@dataclass(frozen=True)
class CellsPerRowOffset:
    offset: int


@dataclass(frozen=True)
class RowSample:
    probability: float


@dataclass(frozen=True)
class PassAll:
    pass


@dataclass(frozen=True)
class BlockAll:
    pass


@dataclass(frozen=True)
class StripValue:
    pass


@dataclass(frozen=True)
class ApplyLabel:
    label: str


def chain_filters(filters) -> Chain:
    """AND: each filter is applied to the output of the previous one."""
    return Chain(tuple(filters))


def interleave_filters(filters) -> Interleave:
    """OR: union of the outputs of every filter."""
    return Interleave(tuple(filters))


def condition_filter(predicate, true_filter=None, false_filter=None) -> Condition:
    """Apply true_filter if predicate yields any cell, else false_filter."""
    return Condition(predicate, true_filter, false_filter)


def row_key_regex_filter(pattern) -> RowKeyRegex:
    return RowKeyRegex(as_bytes(pattern))


def family_regex_filter(pattern: str) -> FamilyRegex:
    return FamilyRegex(pattern)


def family_filter(name: str) -> FamilyRegex:
    """Exact family name match; the name is regex-escaped."""
    return FamilyRegex(f"^{re.escape(name)}$")


def qualifier_regex_filter(pattern) -> QualifierRegex:
    return QualifierRegex(as_bytes(pattern))


def column_filter(family: str, qualifier) -> Chain:
    """Exact family + qualifier match."""
    return chain_filters([
        family_filter(family),
        QualifierRegex(b"^" + re.escape(as_bytes(qualifier)) + b"$"),
    ])


def value_regex_filter(pattern) -> ValueRegex:
    return ValueRegex(as_bytes(pattern))


def value_range_filter(start=None, end=None, *, start_inclusive=True, end_inclusive=False) -> ValueRange:
    return ValueRange(
        start=as_bytes(start) if start is not None else None,
        end=as_bytes(end) if end is not None else None,
        start_inclusive=start_inclusive,
        end_inclusive=end_inclusive,
    )


def timestamp_range_filter(start: int | None = None, end: int | None = None) -> TimestampRange:
    return TimestampRange(start, end)


def cells_per_column_limit_filter(limit: int) -> CellsPerColumnLimit:
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")  # noqa: TRY003
    return CellsPerColumnLimit(limit)


def cells_per_row_limit_filter(limit: int) -> CellsPerRowLimit:
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")  # noqa: TRY003
    return CellsPerRowLimit(limit)


def cells_per_row_offset_filter(offset: int) -> CellsPerRowOffset:
    if offset < 0:
        raise ValueError(f"offset must be non-negative, got {offset}")  # noqa: TRY003
    return CellsPerRowOffset(offset)


def row_sample_filter(probability: float) -> RowSample:
    if not 0.0 <= probability <= 1.0:
        raise ValueError(f"probability must be within [0, 1], got {probability}")  # noqa: TRY003
    return RowSample(probability)


def pass_all_filter() -> PassAll:
    return PassAll()


def block_all_filter() -> BlockAll:
    return BlockAll()


def strip_value_filter() -> StripValue:
    return StripValue()


def apply_label_filter(label: str) -> ApplyLabel:
    return ApplyLabel(label)
