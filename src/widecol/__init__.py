"""widecol - Read adapter for sorted, versioned wide-column stores."""

from .core.config import ReaderConfig
from .core.errors import (
    CodecError,
    InvalidBooleanFormat,
    InvalidDatetimeFormat,
    InvalidFloatFormat,
    InvalidIntegerFormat,
    InvalidTermFormat,
    RangeError,
    RowKeyFormatError,
    ScanError,
    StructuredFormatError,
    WideColumnError,
)
from .core.ranges import (
    ALL_ROWS,
    Bound,
    RowRange,
    RowSet,
    prefix_end,
    resume_after,
    row_range,
    row_range_closed,
    row_range_from,
    row_range_open,
    row_range_open_closed,
    row_range_prefix,
    row_range_unbounded,
    row_range_until,
    row_set,
    row_set_from_ranges,
)
from .core.reader import TableReader
from .core.timeseries import (
    SeriesKey,
    TimeSeriesPoint,
    from_reverse_timestamp,
    parse_point,
    parse_row_key,
    reverse_timestamp,
    time_series_row_key,
)
from .core.types import Cell, ChunkEvent, Column, Family, Key, Row, RowStatus, TableLocator, Timestamp, rows_to_list
from .components.chunks import AssemblerState, ChunkAssembler, assemble_rows
from .components.codec import (
    BooleanValue,
    CellType,
    DecodeResult,
    FloatValue,
    IntegerValue,
    RawValue,
    StringValue,
    StructuredValue,
    TermValue,
    TimestampValue,
    decode,
    decode_or_raise,
    encode,
)
from .components.cursor import ScanCursor, ScanState
from .components.memory import InMemoryTable

__all__ = [
    "ALL_ROWS",
    "AssemblerState",
    "BooleanValue",
    "Bound",
    "Cell",
    "CellType",
    "ChunkAssembler",
    "ChunkEvent",
    "CodecError",
    "Column",
    "DecodeResult",
    "Family",
    "FloatValue",
    "InMemoryTable",
    "IntegerValue",
    "InvalidBooleanFormat",
    "InvalidDatetimeFormat",
    "InvalidFloatFormat",
    "InvalidIntegerFormat",
    "InvalidTermFormat",
    "Key",
    "RangeError",
    "RawValue",
    "ReaderConfig",
    "Row",
    "RowKeyFormatError",
    "RowRange",
    "RowSet",
    "RowStatus",
    "ScanCursor",
    "ScanError",
    "ScanState",
    "SeriesKey",
    "StringValue",
    "StructuredFormatError",
    "StructuredValue",
    "TableLocator",
    "TableReader",
    "TermValue",
    "TimeSeriesPoint",
    "Timestamp",
    "TimestampValue",
    "WideColumnError",
    "assemble_rows",
    "decode",
    "decode_or_raise",
    "encode",
    "from_reverse_timestamp",
    "parse_point",
    "parse_row_key",
    "prefix_end",
    "resume_after",
    "reverse_timestamp",
    "row_range",
    "row_range_closed",
    "row_range_from",
    "row_range_open",
    "row_range_open_closed",
    "row_range_prefix",
    "row_range_unbounded",
    "row_range_until",
    "row_set",
    "row_set_from_ranges",
    "rows_to_list",
    "time_series_row_key",
]
