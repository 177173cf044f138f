"""Exception hierarchy for widecol.

Defines all custom exceptions used throughout the implementation.
"""

from __future__ import annotations


class WideColumnError(Exception):
    """Base exception for all widecol errors."""
    pass


class RangeError(WideColumnError):
    """Raised when a row range boundary cannot be interpreted as a key."""
    pass


class RowKeyFormatError(WideColumnError):
    """Raised when a time-series row key or reverse timestamp cannot be parsed."""
    pass


class ScanError(WideColumnError):
    """Raised when the fetch collaborator fails during a read or scan."""
    pass


class CodecError(WideColumnError):
    """Base class for cell value decode failures.

    Attributes:
        code: Stable machine-readable error code
    """

    code = "invalid_format"


class InvalidIntegerFormat(CodecError):
    code = "invalid_integer_format"


class InvalidFloatFormat(CodecError):
    code = "invalid_float_format"


class InvalidBooleanFormat(CodecError):
    code = "invalid_boolean_format"


class InvalidDatetimeFormat(CodecError):
    code = "invalid_datetime_format"


class InvalidTermFormat(CodecError):
    code = "invalid_term_format"


class StructuredFormatError(CodecError):
    """Raised when a structured (JSON) payload cannot be parsed."""

    code = "invalid_json_format"
