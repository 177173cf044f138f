"""Protocol definition for the batch fetch collaborator."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    import threading
    from collections.abc import Sequence

    from ..core.ranges import RowSelection
    from ..core.types import ChunkEvent, TableLocator


@runtime_checkable
class BatchFetcher(Protocol):
    """Demultiplexed view of one streaming read call."""

    def fetch_batch(
        self,
        locator: TableLocator,
        row_set: RowSelection,
        row_filter: Any,
        rows_limit: int,
        cancel: threading.Event | None = None,
    ) -> Sequence[ChunkEvent]:
        """Return the ordered chunk events for at most rows_limit rows.

        A rows_limit of 0 means no limit. row_filter is passed through as-is.
        Implementations should stop early once cancel is set. Failures are
        raised; callers translate them.
        """
        ...
