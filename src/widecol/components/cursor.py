"""Resumable scan cursor.

Turns bounded per-call fetches into an unbounded forward-only iteration over a
row selection.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..core.config import DEFAULT_BATCH_SIZE
from ..core.errors import ScanError
from ..core.ranges import ALL_ROWS, RowSelection, resume_after
from ..core.types import Key, Row
from .chunks import assemble_rows

if TYPE_CHECKING:
    from ..core.types import TableLocator
    from ..interfaces.fetch import BatchFetcher

logger = logging.getLogger(__name__)


@dataclass
class ScanState:
    """Mutable per-scan state, rewritten once per batch boundary."""

    row_set: RowSelection
    rows_limit: int
    exhausted: bool = False
    last_key: Key | None = None
    batches: int = 0
    rows_yielded: int = 0


class ScanCursor:
    """Lazy ordered iterator over rows, fetched in batches.

    Args:
        fetcher: Batch fetch collaborator
        locator: Table every fetch is issued against
        row_set: Rows to scan; ALL_ROWS scans the whole table
        row_filter: Filter descriptor handed unchanged to the fetcher
        batch_size: Row ceiling per fetch

    Invariants:
        - Rows are yielded in the order the store returns them
        - After the first batch, explicit keys up to the last yielded key are
          dropped and the first range starts open at that key, so no key is
          fetched again
        - A batch that does not advance the last key ends the scan once its
          rows are yielded
        - A fetch error is raised once as ScanError; the cursor is then
          exhausted and never retries
        - One consumer at a time; no internal synchronization

    Only the first range of a multi-range row set is rewritten on resume.
    """

    def __init__(
        self,
        fetcher: BatchFetcher,
        locator: TableLocator,
        row_set: RowSelection = ALL_ROWS,
        row_filter: Any = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")  # noqa: TRY003
        self._fetcher = fetcher
        self._locator = locator
        self._filter = row_filter
        self._buffer: deque[Row] = deque()
        self._cancel = threading.Event()
        self._state = ScanState(row_set=row_set, rows_limit=batch_size)
        if row_set.is_empty:
            self._state.exhausted = True

    @classmethod
    def open(cls, fetcher, locator, row_set=ALL_ROWS, row_filter=None, batch_size=DEFAULT_BATCH_SIZE) -> ScanCursor:
        return cls(fetcher, locator, row_set, row_filter, batch_size)

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def exhausted(self) -> bool:
        return self._state.exhausted and not self._buffer

    def __iter__(self) -> ScanCursor:
        return self

    def __next__(self) -> Row:
        if not self._buffer and not self._state.exhausted:
            self._fetch()
        if not self._buffer:
            raise StopIteration
        row = self._buffer.popleft()
        if row.key is not None:
            self._state.last_key = row.key
        self._state.rows_yielded += 1
        return row

    def _fetch(self) -> None:
        state = self._state
        if state.last_key is not None:
            state.row_set = resume_after(state.row_set, state.last_key)
            if state.row_set.is_empty:
                state.exhausted = True
                return

        state.batches += 1
        try:
            chunks = self._fetcher.fetch_batch(
                self._locator, state.row_set, self._filter, state.rows_limit, self._cancel
            )
        except Exception as e:
            state.exhausted = True
            logger.warning(f"Scan of {self._locator.table_path} failed on batch {state.batches}: {e}")
            raise ScanError(f"Fetch failed on batch {state.batches}: {e}") from e

        rows = assemble_rows(chunks)
        logger.debug(f"Batch {state.batches} from {self._locator.table_path}: {len(rows)} rows")
        if not rows:
            state.exhausted = True
            logger.debug(f"Scan exhausted after {state.rows_yielded} rows")
            return
        self._buffer.extend(rows)

        keys = [row.key for row in rows if row.key is not None]
        if not keys or keys[-1] == state.last_key:
            state.exhausted = True
            logger.warning(f"Batch {state.batches} from {self._locator.table_path} did not advance the scan; stopping")

    def close(self) -> None:
        """Stop the scan, signal cancellation to any in-flight fetch and drop buffered rows."""
        self._cancel.set()
        self._state.exhausted = True
        self._buffer.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
