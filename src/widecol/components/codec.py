"""Typed cell value codec.

Encodes tagged scalar values to cell bytes and decodes them back.

Formats:
    binary, string  identity
    json            UTF-8 JSON text
    integer         8-byte signed big-endian two's complement
    float           8-byte IEEE-754 big-endian
    boolean         1 byte, 0x01 / 0x00
    datetime        8-byte signed big-endian microseconds since the Unix epoch
    term            versioned tagged length-prefixed binary (see below)

Integer encodings compare correctly as bytes only among values of the same
sign: every negative value sorts after every non-negative one.
"""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from ..core.errors import (
    CodecError,
    InvalidBooleanFormat,
    InvalidDatetimeFormat,
    InvalidFloatFormat,
    InvalidIntegerFormat,
    InvalidTermFormat,
    StructuredFormatError,
)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_INT64 = struct.Struct(">q")
_FLOAT64 = struct.Struct(">d")
_U32 = struct.Struct(">I")

# Term format: [magic "WCT"][version (1B)][value]
# value: [tag (1B)][payload]; lengths and counts are 4-byte big-endian
TERM_MAGIC = b"WCT"
TERM_VERSION = 1
_LENGTH_TAGS = frozenset((b"i", b"s", b"b", b"l", b"t", b"m"))


class CellType(Enum):
    """Selects how a cell's bytes are decoded."""

    BINARY = "binary"
    STRING = "string"
    JSON = "json"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    TERM = "term"


@dataclass(frozen=True)
class RawValue:
    value: bytes


@dataclass(frozen=True)
class StringValue:
    value: str


@dataclass(frozen=True)
class StructuredValue:
    value: dict | list


@dataclass(frozen=True)
class IntegerValue:
    value: int


@dataclass(frozen=True)
class FloatValue:
    value: float


@dataclass(frozen=True)
class BooleanValue:
    value: bool


@dataclass(frozen=True)
class TimestampValue:
    value: datetime


@dataclass(frozen=True)
class TermValue:
    value: Any


CellValue = (
    RawValue
    | StringValue
    | StructuredValue
    | IntegerValue
    | FloatValue
    | BooleanValue
    | TimestampValue
    | TermValue
)


@dataclass(frozen=True, slots=True)
class DecodeResult:
    """Outcome of a decode: either a value or a CodecError, never both."""

    value: Any = None
    error: CodecError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def encode(value: CellValue) -> bytes:
    """Encode a tagged value to cell bytes."""
    if isinstance(value, RawValue):
        return bytes(value.value)
    if isinstance(value, StringValue):
        return value.value.encode("utf-8", "surrogateescape")
    if isinstance(value, StructuredValue):
        return json.dumps(value.value, separators=(",", ":")).encode("utf-8")
    if isinstance(value, BooleanValue):
        return b"\x01" if value.value else b"\x00"
    if isinstance(value, IntegerValue):
        try:
            return _INT64.pack(value.value)
        except struct.error as e:
            raise InvalidIntegerFormat(f"Integer out of signed 64-bit range: {value.value}") from e
    if isinstance(value, FloatValue):
        return _FLOAT64.pack(float(value.value))
    if isinstance(value, TimestampValue):
        return _INT64.pack(datetime_to_micros(value.value))
    if isinstance(value, TermValue):
        out = bytearray(TERM_MAGIC)
        out.append(TERM_VERSION)
        _encode_term(value.value, out)
        return bytes(out)
    raise TypeError(f"Unsupported cell value type: {type(value).__name__}")


def decode(cell_type: CellType, data: bytes) -> DecodeResult:
    """Decode cell bytes; failures are returned, not raised."""
    try:
        return DecodeResult(value=_DECODERS[cell_type](data))
    except CodecError as e:
        return DecodeResult(error=e)


def decode_or_raise(cell_type: CellType, data: bytes) -> Any:
    """Decode cell bytes, raising the CodecError on failure."""
    return decode(cell_type, data).unwrap()


def datetime_to_micros(dt: datetime) -> int:
    """Microseconds since the Unix epoch; naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - EPOCH) // timedelta(microseconds=1)


def _decode_json(data: bytes) -> Any:
    try:
        return json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StructuredFormatError(str(e)) from e


def _decode_integer(data: bytes) -> int:
    if len(data) != _INT64.size:
        raise InvalidIntegerFormat(f"Expected 8 bytes, got {len(data)}")
    return _INT64.unpack(data)[0]


def _decode_float(data: bytes) -> float:
    if len(data) != _FLOAT64.size:
        raise InvalidFloatFormat(f"Expected 8 bytes, got {len(data)}")
    return _FLOAT64.unpack(data)[0]


def _decode_boolean(data: bytes) -> bool:
    if data == b"\x01":
        return True
    if data == b"\x00":
        return False
    raise InvalidBooleanFormat(f"Expected 0x00 or 0x01, got {data!r}")


def _decode_datetime(data: bytes) -> datetime:
    if len(data) != _INT64.size:
        raise InvalidDatetimeFormat(f"Expected 8 bytes, got {len(data)}")
    micros = _INT64.unpack(data)[0]
    try:
        return EPOCH + timedelta(microseconds=micros)
    except OverflowError as e:
        raise InvalidDatetimeFormat(f"Timestamp out of range: {micros}") from e


def _decode_term(data: bytes) -> Any:
    header = len(TERM_MAGIC) + 1
    if data[: len(TERM_MAGIC)] != TERM_MAGIC or len(data) < header:
        raise InvalidTermFormat("Missing term header")
    if data[len(TERM_MAGIC)] != TERM_VERSION:
        raise InvalidTermFormat(f"Unsupported term version: {data[len(TERM_MAGIC)]}")
    try:
        value, offset = _decode_term_value(data, header)
    except (struct.error, IndexError, UnicodeDecodeError, RecursionError) as e:
        raise InvalidTermFormat(f"Truncated or corrupt term: {e}") from e
    if offset != len(data):
        raise InvalidTermFormat(f"Trailing data after term at offset {offset}")
    return value


_DECODERS = {
    CellType.BINARY: bytes,
    CellType.STRING: lambda data: bytes(data).decode("utf-8", "surrogateescape"),
    CellType.JSON: _decode_json,
    CellType.INTEGER: _decode_integer,
    CellType.FLOAT: _decode_float,
    CellType.BOOLEAN: _decode_boolean,
    CellType.DATETIME: _decode_datetime,
    CellType.TERM: _decode_term,
}


def _encode_term(value: Any, out: bytearray) -> None:
    # bool before int: bool is an int subclass
    if value is None:
        out += b"N"
    elif value is True:
        out += b"T"
    elif value is False:
        out += b"F"
    elif isinstance(value, int):
        raw = value.to_bytes((value.bit_length() + 8) // 8, "big", signed=True)
        out += b"i" + _U32.pack(len(raw)) + raw
    elif isinstance(value, float):
        out += b"d" + _FLOAT64.pack(value)
    elif isinstance(value, str):
        raw = value.encode("utf-8")
        out += b"s" + _U32.pack(len(raw)) + raw
    elif isinstance(value, (bytes, bytearray)):
        out += b"b" + _U32.pack(len(value)) + bytes(value)
    elif isinstance(value, (list, tuple)):
        out += (b"l" if isinstance(value, list) else b"t") + _U32.pack(len(value))
        for item in value:
            _encode_term(item, out)
    elif isinstance(value, dict):
        out += b"m" + _U32.pack(len(value))
        for k, v in value.items():
            _encode_term(k, out)
            _encode_term(v, out)
    else:
        raise TypeError(f"Cannot encode {type(value).__name__} as a term")


def _read_exact(data: bytes, offset: int, n: int) -> bytes:
    chunk = data[offset:offset + n]
    if len(chunk) != n:
        raise InvalidTermFormat(f"Expected {n} bytes at offset {offset}")
    return chunk


def _decode_term_value(data: bytes, offset: int) -> tuple[Any, int]:
    tag = _read_exact(data, offset, 1)
    offset += 1
    if tag == b"N":
        return None, offset
    if tag == b"T":
        return True, offset
    if tag == b"F":
        return False, offset
    if tag == b"d":
        return _FLOAT64.unpack(_read_exact(data, offset, 8))[0], offset + 8
    if tag not in _LENGTH_TAGS:
        raise InvalidTermFormat(f"Unknown term tag {tag!r} at offset {offset - 1}")

    (length,) = _U32.unpack(_read_exact(data, offset, 4))
    offset += 4
    if tag == b"i":
        return int.from_bytes(_read_exact(data, offset, length), "big", signed=True), offset + length
    if tag == b"s":
        return _read_exact(data, offset, length).decode("utf-8"), offset + length
    if tag == b"b":
        return _read_exact(data, offset, length), offset + length
    if tag in (b"l", b"t"):
        items = []
        for _ in range(length):
            item, offset = _decode_term_value(data, offset)
            items.append(item)
        return (items if tag == b"l" else tuple(items)), offset
    if tag == b"m":
        result = {}
        for _ in range(length):
            k, offset = _decode_term_value(data, offset)
            v, offset = _decode_term_value(data, offset)
            try:
                result[k] = v
            except TypeError as e:
                raise InvalidTermFormat(f"Unhashable map key: {k!r}") from e
        return result, offset
    raise AssertionError(f"unhandled term tag {tag!r}")
