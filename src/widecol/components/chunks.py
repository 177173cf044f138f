"""Chunk assembler.

Folds an ordered stream of chunk events into complete rows.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from enum import Enum

from ..core.types import Cell, ChunkEvent, Column, Family, Key, Row, RowStatus

logger = logging.getLogger(__name__)

# Pending cell: (family, qualifier, Cell)
_Pending = tuple[str | None, bytes | None, Cell]


class AssemblerState(Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"


class ChunkAssembler:
    """Sequential state machine turning chunk events into rows.

    Invariants:
        - Rows are emitted in the order their commit events arrive
        - Cells keep arrival order within a column; nothing is re-sorted
        - A reset discards everything buffered since the last commit
        - Malformed sequences never raise; the assembler emits what it can

    A cell missing its family or qualifier is kept under a None name. Omitted
    fields are not inherited from the previous chunk.
    """

    def __init__(self):
        self._row_key: Key | None = None
        self._pending: list[_Pending] = []

    @property
    def state(self) -> AssemblerState:
        return AssemblerState.ACCUMULATING if self._pending else AssemblerState.IDLE

    @property
    def row_key(self) -> Key | None:
        """Key of the row currently being accumulated, if known."""
        return self._row_key

    def push(self, chunk: ChunkEvent) -> Row | None:
        """Process one chunk; return a Row when the chunk commits one."""
        if chunk.row_key is not None:
            self._row_key = chunk.row_key

        if chunk.has_cell_fields:
            cell = Cell(
                value=chunk.value if chunk.value is not None else b"",
                timestamp=chunk.timestamp if chunk.timestamp is not None else 0,
                labels=tuple(chunk.labels) if chunk.labels else (),
            )
            self._pending.append((chunk.family, chunk.qualifier, cell))

        if chunk.status is RowStatus.COMMIT:
            row = _build_row(self._row_key, self._pending)
            if row.key is None:
                logger.debug("Committed row without a key")
            self.reset()
            return row

        if chunk.status is RowStatus.RESET:
            logger.debug(f"Reset row {self._row_key!r}, discarding {len(self._pending)} cells")
            self.reset()

        return None

    def feed(self, chunks: Iterable[ChunkEvent]) -> Iterator[Row]:
        """Yield each row as its commit event is consumed."""
        for chunk in chunks:
            row = self.push(chunk)
            if row is not None:
                yield row

    def reset(self) -> None:
        """Return to Idle, dropping buffered cells and the row key."""
        self._row_key = None
        self._pending = []


def assemble_rows(chunks: Iterable[ChunkEvent]) -> list[Row]:
    """Assemble one independent batch of chunk events from a fresh Idle state."""
    return list(ChunkAssembler().feed(chunks))


def _build_row(key: Key | None, pending: list[_Pending]) -> Row:
    # dicts keep first-seen order for families and qualifiers
    grouped: dict[str | None, dict[bytes | None, list[Cell]]] = {}
    for family, qualifier, cell in pending:
        grouped.setdefault(family, {}).setdefault(qualifier, []).append(cell)

    families = tuple(
        Family(
            name=family,
            columns=tuple(Column(qualifier=q, cells=tuple(cells)) for q, cells in columns.items()),
        )
        for family, columns in grouped.items()
    )
    return Row(key=key, families=families)
