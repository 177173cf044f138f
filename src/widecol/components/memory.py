"""In-memory table serving batch fetches.

Uses sortedcontainers.SortedDict to keep rows in key order. Stands in for the
remote service in tests and local development.
"""

from __future__ import annotations

import logging
import random
import re
import threading
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from sortedcontainers import SortedDict

from ..core.ranges import AllRows, RowSelection
from ..core.types import Cell, ChunkEvent, Key, RowStatus, TableLocator, Timestamp, as_bytes
from . import filters as f
from .codec import CellValue, encode

logger = logging.getLogger(__name__)

# (family, qualifier, cell) in canonical order
Entry = tuple[str, bytes, Cell]


@dataclass(frozen=True)
class FetchRequest:
    """One fetch_batch call as received by the table."""

    locator: TableLocator
    row_set: RowSelection
    row_filter: Any
    rows_limit: int


class InMemoryTable:
    """Sorted in-memory table implementing the BatchFetcher protocol.

    Rows are served in ascending key order. Within a row, families and
    qualifiers are sorted and each column's cells are newest first. Every
    cell is sent as its own chunk with family and qualifier spelled out; the
    row key appears on the first chunk and the last chunk commits the row.

    Regex filters use search (not full-match) semantics.
    """

    def __init__(self, seed: int | None = None):
        self._rows: SortedDict = SortedDict()
        self._lock = threading.Lock()
        self._random = random.Random(seed)
        self._timestamp_counter = int(time.time() * 1_000_000)
        self.requests: list[FetchRequest] = []

    def __len__(self) -> int:
        return len(self._rows)

    def _next_timestamp(self) -> Timestamp:
        self._timestamp_counter += 1
        return self._timestamp_counter

    def set_cell(
        self,
        key,
        family: str,
        qualifier,
        value: bytes,
        timestamp: Timestamp | None = None,
        labels: Iterable[str] = (),
    ) -> None:
        """Write one cell version; an existing version at the same timestamp is replaced."""
        key, qualifier = as_bytes(key), as_bytes(qualifier)
        with self._lock:
            ts = self._next_timestamp() if timestamp is None else timestamp
            column = self._rows.setdefault(key, {}).setdefault(family, {}).setdefault(qualifier, [])
            column[:] = [c for c in column if c.timestamp != ts]
            column.append(Cell(value=bytes(value), timestamp=ts, labels=tuple(labels)))
            column.sort(key=lambda c: c.timestamp, reverse=True)

    def write_cells(self, key, cells: Iterable[tuple[str, Any, CellValue]], timestamp: Timestamp | None = None) -> None:
        """Write typed cells: (family, qualifier, tagged value) triples."""
        for family, qualifier, value in cells:
            self.set_cell(key, family, qualifier, encode(value), timestamp=timestamp)

    def delete_row(self, key) -> bool:
        with self._lock:
            return self._rows.pop(as_bytes(key), None) is not None

    def fetch_batch(
        self,
        locator: TableLocator,
        row_set: RowSelection,
        row_filter: Any = None,
        rows_limit: int = 0,
        cancel: threading.Event | None = None,
    ) -> list[ChunkEvent]:
        self.requests.append(FetchRequest(locator, row_set, row_filter, rows_limit))
        chunks: list[ChunkEvent] = []
        emitted = 0
        with self._lock:
            for key in self._select_keys(row_set):
                if cancel is not None and cancel.is_set():
                    logger.info(f"Fetch on {locator.table_path} cancelled after {emitted} rows")
                    break
                entries = self._apply(row_filter, key, list(self._entries(key)))
                if not entries:
                    continue
                chunks.extend(_row_chunks(key, entries))
                emitted += 1
                if rows_limit and emitted >= rows_limit:
                    break
        logger.debug(f"Served {emitted} rows ({len(chunks)} chunks) from {locator.table_path}")
        return chunks

    def _select_keys(self, row_set: RowSelection) -> list[Key]:
        if isinstance(row_set, AllRows):
            return list(self._rows.keys())
        selected = {k for k in row_set.keys if k in self._rows}
        for r in row_set.ranges:
            selected.update(self._rows.irange(
                minimum=r.start.key if r.start else None,
                maximum=r.end.key if r.end else None,
                inclusive=(
                    r.start.inclusive if r.start else True,
                    r.end.inclusive if r.end else True,
                ),
            ))
        return sorted(selected)

    def _entries(self, key: Key) -> Iterator[Entry]:
        families = self._rows[key]
        for family in sorted(families):
            for qualifier in sorted(families[family]):
                for cell in families[family][qualifier]:
                    yield (family, qualifier, cell)

    def _apply(self, flt: Any, key: Key, entries: list[Entry]) -> list[Entry]:
        """Evaluate a filter descriptor against one row's cells."""
        if flt is None or isinstance(flt, f.PassAll):
            return entries
        if isinstance(flt, f.BlockAll):
            return []
        if isinstance(flt, f.Chain):
            for sub in flt.filters:
                entries = self._apply(sub, key, entries)
            return entries
        if isinstance(flt, f.Interleave):
            merged = [e for sub in flt.filters for e in self._apply(sub, key, entries)]
            return sorted(merged, key=lambda e: (e[0], e[1], -e[2].timestamp))
        if isinstance(flt, f.Condition):
            branch = flt.true_filter if self._apply(flt.predicate, key, entries) else flt.false_filter
            return self._apply(branch, key, entries) if branch is not None else []
        if isinstance(flt, f.RowKeyRegex):
            return entries if re.search(flt.pattern, key) else []
        if isinstance(flt, f.RowSample):
            return entries if self._random.random() < flt.probability else []
        if isinstance(flt, f.FamilyRegex):
            return [e for e in entries if re.search(flt.pattern, e[0])]
        if isinstance(flt, f.QualifierRegex):
            return [e for e in entries if re.search(flt.pattern, e[1])]
        if isinstance(flt, f.ValueRegex):
            return [e for e in entries if re.search(flt.pattern, e[2].value)]
        if isinstance(flt, f.ValueRange):
            return [e for e in entries if _in_value_range(flt, e[2].value)]
        if isinstance(flt, f.TimestampRange):
            return [
                e for e in entries
                if (flt.start is None or e[2].timestamp >= flt.start)
                and (flt.end is None or e[2].timestamp < flt.end)
            ]
        if isinstance(flt, f.CellsPerColumnLimit):
            seen: dict[tuple[str, bytes], int] = {}
            kept = []
            for e in entries:
                n = seen.get((e[0], e[1]), 0)
                if n < flt.limit:
                    kept.append(e)
                seen[(e[0], e[1])] = n + 1
            return kept
        if isinstance(flt, f.CellsPerRowLimit):
            return entries[:flt.limit]
        if isinstance(flt, f.CellsPerRowOffset):
            return entries[flt.offset:]
        if isinstance(flt, f.StripValue):
            return [(fam, q, Cell(b"", c.timestamp, c.labels)) for fam, q, c in entries]
        if isinstance(flt, f.ApplyLabel):
            return [(fam, q, Cell(c.value, c.timestamp, (*c.labels, flt.label))) for fam, q, c in entries]
        raise TypeError(f"Unsupported filter: {flt!r}")


def _in_value_range(flt: f.ValueRange, value: bytes) -> bool:
    if flt.start is not None:
        if value < flt.start or (value == flt.start and not flt.start_inclusive):
            return False
    if flt.end is not None:
        if value > flt.end or (value == flt.end and not flt.end_inclusive):
            return False
    return True


def _row_chunks(key: Key, entries: list[Entry]) -> Iterator[ChunkEvent]:
    last = len(entries) - 1
    for i, (family, qualifier, cell) in enumerate(entries):
        yield ChunkEvent(
            row_key=key if i == 0 else None,
            family=family,
            qualifier=qualifier,
            timestamp=cell.timestamp,
            value=cell.value,
            labels=cell.labels or None,
            status=RowStatus.COMMIT if i == last else RowStatus.NONE,
        )
