"""Row-key range algebra.

Builds row ranges and row sets from boundary specifications and computes the
effective row set of a resumed scan.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

from .errors import RangeError
from .types import Key, as_bytes

MAX_BYTE = 0xFF


def to_key(value) -> Key:
    """Coerce a boundary value to a row key, raising RangeError if impossible."""
    try:
        return as_bytes(value)
    except TypeError as e:
        raise RangeError(f"Invalid row key boundary: {value!r}") from e


@dataclass(frozen=True)
class Bound:
    """One side of a row range; ``inclusive`` selects closed vs open."""

    key: Key
    inclusive: bool

    @classmethod
    def closed(cls, key) -> Bound:
        return cls(to_key(key), True)

    @classmethod
    def open(cls, key) -> Bound:
        return cls(to_key(key), False)


@dataclass(frozen=True)
class RowRange:
    """Contiguous interval of row keys; a missing bound means unbounded.

    The tags on each side are independent, all four closed/open combinations
    are legal.
    """

    start: Bound | None = None
    end: Bound | None = None

    def contains(self, key: Key) -> bool:
        if self.start is not None:
            if key < self.start.key or (key == self.start.key and not self.start.inclusive):
                return False
        if self.end is not None:
            if key > self.end.key or (key == self.end.key and not self.end.inclusive):
                return False
        return True

    def with_start(self, start: Bound | None) -> RowRange:
        return replace(self, start=start)

    def starts_after(self, key: Key) -> bool:
        """True if every key in the range is strictly greater than key."""
        if self.start is None:
            return False
        return key < self.start.key or (key == self.start.key and not self.start.inclusive)


@dataclass(frozen=True)
class RowSet:
    """Explicit row keys plus row ranges.

    An empty RowSet selects no rows. Use ALL_ROWS to select every row.
    """

    keys: tuple[Key, ...] = ()
    ranges: tuple[RowRange, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.keys and not self.ranges

    def contains(self, key: Key) -> bool:
        return key in self.keys or any(r.contains(key) for r in self.ranges)


class AllRows:
    """Sentinel row set selecting every row of a table."""

    is_empty = False

    def contains(self, key: Key) -> bool:
        return True

    def __repr__(self) -> str:
        return "ALL_ROWS"


ALL_ROWS = AllRows()

RowSelection = RowSet | AllRows


def prefix_end(prefix) -> Key | None:
    """Return the smallest key greater than every key starting with prefix.

    Trailing 0xFF bytes are stripped and the last remaining byte is incremented.
    Returns None (no upper bound) when prefix is empty or all 0xFF.
    """
    stripped = to_key(prefix).rstrip(bytes([MAX_BYTE]))
    if not stripped:
        return None
    return stripped[:-1] + bytes([stripped[-1] + 1])


def row_range(start, end) -> RowRange:
    """[start, end)"""
    return RowRange(Bound.closed(start), Bound.open(end))


def row_range_open(start, end) -> RowRange:
    """(start, end)"""
    return RowRange(Bound.open(start), Bound.open(end))


def row_range_closed(start, end) -> RowRange:
    """[start, end]"""
    return RowRange(Bound.closed(start), Bound.closed(end))


def row_range_open_closed(start, end) -> RowRange:
    """(start, end]"""
    return RowRange(Bound.open(start), Bound.closed(end))


def row_range_from(start, inclusive: bool = True) -> RowRange:
    """[start, +inf) or (start, +inf)"""
    return RowRange(Bound(to_key(start), inclusive), None)


def row_range_until(end, inclusive: bool = False) -> RowRange:
    """(-inf, end) or (-inf, end]"""
    return RowRange(None, Bound(to_key(end), inclusive))


def row_range_unbounded() -> RowRange:
    return RowRange()


def row_range_prefix(prefix) -> RowRange:
    """Range matching every key that starts with prefix."""
    key = to_key(prefix)
    if not key:
        return RowRange()
    end = prefix_end(key)
    return RowRange(Bound.closed(key), Bound.open(end) if end is not None else None)


def row_set(keys: Iterable) -> RowSet:
    """RowSet of explicit keys (order preserved, duplicates allowed)."""
    return RowSet(keys=tuple(to_key(k) for k in keys))


def row_set_from_ranges(ranges: Iterable[RowRange]) -> RowSet:
    return RowSet(ranges=tuple(ranges))


def resume_after(selection: RowSelection, last_key: Key) -> RowSelection:
    """Return the row selection for the batch following ``last_key``.

    - ALL_ROWS becomes a single range opening just past last_key.
    - Explicit keys are kept only if strictly greater than last_key.
    - The first range's start is rewritten to open(last_key), unless the
      range still lies entirely after last_key. Other ranges are left
      untouched.
    """
    if isinstance(selection, AllRows):
        return RowSet(ranges=(RowRange(Bound.open(last_key), None),))
    keys = tuple(k for k in selection.keys if k > last_key)
    if not selection.ranges:
        return RowSet(keys=keys)
    first, *rest = selection.ranges
    if not first.starts_after(last_key):
        first = first.with_start(Bound.open(last_key))
    return RowSet(keys=keys, ranges=(first, *rest))
