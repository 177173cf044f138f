"""Time-series row keys.

Row key design: ``<metric_id>#<reverse_timestamp>``. The reverse timestamp is
MAX_TIMESTAMP minus the point's microseconds since the epoch, zero-padded to
19 digits, so the newest point of a metric sorts first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from ..components.codec import EPOCH, CellType, datetime_to_micros, decode
from .errors import RowKeyFormatError
from .ranges import RowSet, row_range, row_range_prefix, row_set_from_ranges
from .types import Key, Row, as_bytes

MAX_TIMESTAMP = 9_999_999_999_999_999  # year 2286 in microseconds
REVERSE_WIDTH = 19
SEPARATOR = b"#"

DEFAULT_FAMILY = "data"
VALUE_QUALIFIER = b"value"
TIMESTAMP_QUALIFIER = b"ts"
TAGS_QUALIFIER = b"tags"


@dataclass(frozen=True)
class SeriesKey:
    """Parsed time-series row key."""

    metric_id: str
    timestamp: datetime


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One data point read back from a time-series row."""

    row_key: Key | None
    timestamp: datetime | None
    value: Any
    tags: dict = field(default_factory=dict)


def reverse_timestamp(ts: datetime) -> str:
    """Return the zero-padded reverse timestamp; later times give smaller strings."""
    return str(MAX_TIMESTAMP - datetime_to_micros(ts)).zfill(REVERSE_WIDTH)


def from_reverse_timestamp(reverse) -> datetime:
    """Invert reverse_timestamp, returning a UTC datetime."""
    text = reverse.decode("ascii", "replace") if isinstance(reverse, bytes) else reverse
    if not text.isascii() or not text.isdigit():
        raise RowKeyFormatError(f"Invalid reverse timestamp: {reverse!r}")
    try:
        return EPOCH + timedelta(microseconds=MAX_TIMESTAMP - int(text))
    except OverflowError as e:
        raise RowKeyFormatError(f"Reverse timestamp out of range: {reverse!r}") from e


def time_series_row_key(metric_id: str, ts: datetime) -> Key:
    return as_bytes(metric_id) + SEPARATOR + reverse_timestamp(ts).encode("ascii")


def parse_row_key(key) -> SeriesKey:
    """Split a row key at its last separator; the metric id may itself contain '#'."""
    metric, sep, reverse = as_bytes(key).rpartition(SEPARATOR)
    if not sep:
        raise RowKeyFormatError(f"Row key has no {SEPARATOR!r} separator: {key!r}")
    try:
        metric_id = metric.decode("utf-8")
    except UnicodeDecodeError as e:
        raise RowKeyFormatError(f"Metric id is not UTF-8: {metric!r}") from e
    return SeriesKey(metric_id, from_reverse_timestamp(reverse))


def recent_row_set(metric_id: str) -> RowSet:
    """Every point of one metric, newest first."""
    return row_set_from_ranges([row_range_prefix(as_bytes(metric_id) + SEPARATOR)])


def time_range_row_set(metric_id: str, start: datetime, end: datetime) -> RowSet:
    """Points with start < ts <= end.

    Reversal swaps the bounds: end becomes the (inclusive) start key and start
    the (exclusive) end key.
    """
    return row_set_from_ranges([
        row_range(time_series_row_key(metric_id, end), time_series_row_key(metric_id, start)),
    ])


def parse_point(row: Row, family: str = DEFAULT_FAMILY, value_type: CellType = CellType.FLOAT) -> TimeSeriesPoint:
    """Decode a time-series row; undecodable cells fall back to raw bytes or None."""
    timestamp = None
    raw = row.get_cell(family, TIMESTAMP_QUALIFIER)
    if raw is not None:
        timestamp = decode(CellType.DATETIME, raw).value

    value = row.get_cell(family, VALUE_QUALIFIER)
    if value is not None:
        decoded = decode(value_type, value)
        if decoded.ok:
            value = decoded.value

    tags = {}
    raw = row.get_cell(family, TAGS_QUALIFIER)
    if raw is not None:
        decoded = decode(CellType.JSON, raw)
        if decoded.ok and isinstance(decoded.value, dict):
            tags = decoded.value

    return TimeSeriesPoint(row.key, timestamp, value, tags)
