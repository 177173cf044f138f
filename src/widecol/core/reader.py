"""Table reader - main public API.

Orchestrates fetches, chunk assembly, scan cursors and typed cell decoding.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from datetime import datetime
from typing import Any

from ..components.chunks import assemble_rows
from ..components.codec import CellType, DecodeResult, decode
from ..components.cursor import ScanCursor
from ..interfaces.fetch import BatchFetcher
from .config import ReaderConfig
from .errors import ScanError
from .ranges import ALL_ROWS, RowSelection, row_range, row_range_prefix, row_set, row_set_from_ranges
from .timeseries import DEFAULT_FAMILY, TimeSeriesPoint, parse_point, recent_row_set, time_range_row_set
from .types import Row, TableLocator

logger = logging.getLogger(__name__)


class TableReader:
    """Read access to one table through a batch fetcher.

    Args:
        fetcher: Batch fetch collaborator
        locator: Table handle passed into every fetch
        config: Reader configuration (batch size default)

    Public API:
        - read_rows(row_set, row_filter, limit): One fetch, assembled
        - read_row(key): Single row or None
        - scan(row_set, row_filter, batch_size): Resumable cursor
        - scan_range(start, end) / scan_prefix(prefix): Cursor shortcuts
        - scan_in_chunks(chunk_size): Lists of rows
        - count_rows / rows_exist / first_row
        - read_cell / read_cells: Typed decoding
        - query_recent / query_range: Time-series points by metric
    """

    def __init__(self, fetcher: BatchFetcher, locator: TableLocator, config: ReaderConfig | None = None):
        self.fetcher = fetcher
        self.locator = locator
        self.config = config or ReaderConfig()

    @classmethod
    def for_table(cls, fetcher: BatchFetcher, config: ReaderConfig, table_id: str) -> TableReader:
        return cls(fetcher, config.locator(table_id), config)

    def read_rows(self, row_set: RowSelection = ALL_ROWS, row_filter: Any = None, limit: int = 0) -> list[Row]:
        """Fetch once and return the assembled rows (limit 0 = no limit)."""
        if row_set.is_empty:
            return []
        try:
            chunks = self.fetcher.fetch_batch(self.locator, row_set, row_filter, limit)
        except Exception as e:
            logger.warning(f"Read of {self.locator.table_path} failed: {e}")
            raise ScanError(f"Read failed: {e}") from e
        return assemble_rows(chunks)

    def read_row(self, key, row_filter: Any = None) -> Row | None:
        rows = self.read_rows(row_set([key]), row_filter, limit=1)
        return rows[0] if rows else None

    def scan(self, row_set: RowSelection = ALL_ROWS, row_filter: Any = None, batch_size: int | None = None) -> ScanCursor:
        return ScanCursor.open(
            self.fetcher,
            self.locator,
            row_set,
            row_filter,
            batch_size or self.config.batch_size,
        )

    def scan_range(self, start, end, row_filter: Any = None, batch_size: int | None = None) -> ScanCursor:
        """Scan [start, end)."""
        return self.scan(row_set_from_ranges([row_range(start, end)]), row_filter, batch_size)

    def scan_prefix(self, prefix, row_filter: Any = None, batch_size: int | None = None) -> ScanCursor:
        return self.scan(row_set_from_ranges([row_range_prefix(prefix)]), row_filter, batch_size)

    def scan_in_chunks(self, chunk_size: int = 100, row_set: RowSelection = ALL_ROWS, row_filter: Any = None) -> Iterator[list[Row]]:
        """Yield lists of at most chunk_size rows."""
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")  # noqa: TRY003
        with self.scan(row_set, row_filter) as cursor:
            chunk: list[Row] = []
            for row in cursor:
                chunk.append(row)
                if len(chunk) == chunk_size:
                    yield chunk
                    chunk = []
            if chunk:
                yield chunk

    def count_rows(self, row_set: RowSelection = ALL_ROWS, row_filter: Any = None) -> int:
        with self.scan(row_set, row_filter) as cursor:
            return sum(1 for _ in cursor)

    def first_row(self, row_set: RowSelection = ALL_ROWS, row_filter: Any = None) -> Row | None:
        with self.scan(row_set, row_filter, batch_size=1) as cursor:
            return next(cursor, None)

    def rows_exist(self, row_set: RowSelection = ALL_ROWS, row_filter: Any = None) -> bool:
        return self.first_row(row_set, row_filter) is not None

    def read_cell(self, key, family: str, qualifier, cell_type: CellType = CellType.BINARY) -> DecodeResult | None:
        """Decode the most recent value of one cell; None if the cell is absent."""
        row = self.read_row(key)
        if row is None:
            return None
        raw = row.get_cell(family, qualifier)
        if raw is None:
            return None
        return decode(cell_type, raw)

    def query_recent(
        self,
        metric_id: str,
        limit: int = 100,
        family: str = DEFAULT_FAMILY,
        value_type: CellType = CellType.FLOAT,
    ) -> list[TimeSeriesPoint]:
        """Most recent points of a metric, newest first."""
        rows = self.read_rows(recent_row_set(metric_id), limit=limit)
        return [parse_point(row, family, value_type) for row in rows]

    def query_range(
        self,
        metric_id: str,
        start: datetime,
        end: datetime,
        limit: int = 0,
        family: str = DEFAULT_FAMILY,
        value_type: CellType = CellType.FLOAT,
    ) -> list[TimeSeriesPoint]:
        """Points with start < timestamp <= end, newest first."""
        rows = self.read_rows(time_range_row_set(metric_id, start, end), limit=limit)
        return [parse_point(row, family, value_type) for row in rows]

    def read_cells(self, key, specs: Iterable[tuple[CellType, str, Any]]) -> dict[str, Any]:
        """Decode several cells of one row.

        Returns {"family:qualifier": value}; absent or undecodable cells map to None.
        """
        row = self.read_row(key)
        result: dict[str, Any] = {}
        for cell_type, family, qualifier in specs:
            name = qualifier.decode("utf-8", "backslashreplace") if isinstance(qualifier, bytes) else qualifier
            raw = row.get_cell(family, qualifier) if row is not None else None
            value = None
            if raw is not None:
                decoded = decode(cell_type, raw)
                if decoded.ok:
                    value = decoded.value
                else:
                    logger.debug(f"Could not decode {family}:{name} as {cell_type.value}: {decoded.error}")
            result[f"{family}:{name}"] = value
        return result
