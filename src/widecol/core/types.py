"""Common type definitions for widecol.

Defines the row model, chunk events and the table locator used across all
components.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Core primitive types
Key = bytes
Qualifier = bytes
Timestamp = int


def as_bytes(value: bytes | bytearray | memoryview | str) -> bytes:
    """Return value as bytes; text is UTF-8 encoded."""
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise TypeError(f"Expected bytes or str, got {type(value).__name__}")


@dataclass(frozen=True)
class Cell:
    """One timestamped version of a column value."""

    value: bytes = b""
    timestamp: Timestamp = 0
    labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class Column:
    """All delivered versions for one qualifier, in delivery order."""

    qualifier: Qualifier | None
    cells: tuple[Cell, ...] = ()


@dataclass(frozen=True)
class Family:
    """Named group of columns within a row."""

    name: str | None
    columns: tuple[Column, ...] = ()

    def column(self, qualifier: Qualifier | str) -> Column | None:
        wanted = as_bytes(qualifier)
        for column in self.columns:
            if column.qualifier == wanted:
                return column
        return None


@dataclass(frozen=True)
class Row:
    """A fully materialized row.

    Invariants:
        - The key never changes once the row is built
        - Cells within a column keep the order the protocol delivered them in
          (newest first by convention); nothing here re-sorts them
    """

    key: Key | None
    families: tuple[Family, ...] = ()

    def family(self, name: str) -> Family | None:
        for family in self.families:
            if family.name == name:
                return family
        return None

    def cells(self, family: str, qualifier: Qualifier | str) -> tuple[Cell, ...]:
        """Return every delivered version of a column, or () if absent."""
        fam = self.family(family)
        if fam is None:
            return ()
        column = fam.column(qualifier)
        return column.cells if column is not None else ()

    def get_cell(self, family: str, qualifier: Qualifier | str) -> bytes | None:
        """Return the first delivered (most recent) value of a column."""
        cells = self.cells(family, qualifier)
        return cells[0].value if cells else None

    def get_family(self, family: str) -> dict[Qualifier | None, bytes]:
        """Return {qualifier: most recent value} for one family."""
        fam = self.family(family)
        if fam is None:
            return {}
        return {c.qualifier: c.cells[0].value for c in fam.columns if c.cells}

    def to_dict(self) -> dict[str | None, dict[Qualifier | None, bytes]]:
        """Return {family: {qualifier: most recent value}}."""
        return {
            fam.name: {c.qualifier: c.cells[0].value for c in fam.columns if c.cells}
            for fam in self.families
        }


def rows_to_list(rows) -> list[dict]:
    """Convert rows to [{"key": ..., "data": row.to_dict()}, ...]."""
    return [{"key": row.key, "data": row.to_dict()} for row in rows]


class RowStatus(Enum):
    """Row-level status carried by a chunk event."""

    NONE = "none"
    COMMIT = "commit"
    RESET = "reset"


@dataclass(frozen=True)
class ChunkEvent:
    """One fragment of a streamed row.

    Every cell field is independently optional. ``row_key`` is only present
    when the chunk starts (or restates) a row.
    """

    row_key: Key | None = None
    family: str | None = None
    qualifier: Qualifier | None = None
    timestamp: Timestamp | None = None
    value: bytes | None = None
    labels: tuple[str, ...] | None = None
    status: RowStatus = RowStatus.NONE

    @property
    def has_cell_fields(self) -> bool:
        return (
            self.family is not None
            or self.qualifier is not None
            or self.timestamp is not None
            or self.value is not None
        )


@dataclass(frozen=True)
class TableLocator:
    """Explicit handle identifying the table every fetch is issued against."""

    project_id: str
    instance_id: str
    table_id: str
    app_profile_id: str = ""

    @property
    def instance_path(self) -> str:
        return f"projects/{self.project_id}/instances/{self.instance_id}"

    @property
    def table_path(self) -> str:
        return f"{self.instance_path}/tables/{self.table_id}"
