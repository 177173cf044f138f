"""Unit tests for the resumable scan cursor."""

import threading
from itertools import islice

import pytest

from widecol.components.cursor import ScanCursor
from widecol.components.filters import cells_per_column_limit_filter
from widecol.components.memory import InMemoryTable
from widecol.core.errors import ScanError
from widecol.core.ranges import ALL_ROWS, Bound, RowRange, RowSet, row_range, row_set, row_set_from_ranges
from widecol.core.types import ChunkEvent, RowStatus, TableLocator

LOCATOR = TableLocator("proj", "inst", "events")


@pytest.fixture
def table():
    """Create a table with ten single-cell rows row0..row9."""
    t = InMemoryTable()
    for i in range(10):
        t.set_cell(f"row{i}", "cf", b"q", f"v{i}".encode(), timestamp=1)
    return t


class FailingFetcher:
    """Serves one scripted batch, then raises."""

    def __init__(self, first_batch):
        self.first_batch = first_batch
        self.calls = 0

    def fetch_batch(self, locator, row_set, row_filter, rows_limit, cancel=None):
        self.calls += 1
        if self.calls == 1:
            return self.first_batch
        raise ConnectionError("stream reset")


class CancelAwareFetcher:
    """Records the cancellation signal it receives."""

    def __init__(self):
        self.cancels: list[threading.Event] = []

    def fetch_batch(self, locator, row_set, row_filter, rows_limit, cancel=None):
        self.cancels.append(cancel)
        return [ChunkEvent(row_key=b"only", family="cf", qualifier=b"q", timestamp=1, value=b"v",
                           status=RowStatus.COMMIT)]


def test_scan_yields_all_rows_in_order(table):
    """Test every row is yielded once, in key order, across batches."""
    cursor = ScanCursor(table, LOCATOR, ALL_ROWS, batch_size=3)

    keys = [row.key for row in cursor]

    assert keys == [f"row{i}".encode() for i in range(10)]
    assert cursor.exhausted
    assert cursor.state.rows_yielded == 10


def test_resumption_starts_open_at_last_key(table):
    """Test the second request resumes strictly after the last yielded key."""
    rs = row_set_from_ranges([row_range(b"row0", b"row9")])
    cursor = ScanCursor(table, LOCATOR, rs, batch_size=2)

    first_two = [next(cursor).key, next(cursor).key]
    third = next(cursor).key

    assert first_two == [b"row0", b"row1"]
    assert third == b"row2"
    second_request = table.requests[1]
    assert second_request.row_set.ranges[0] == RowRange(Bound.open(b"row1"), Bound.open(b"row9"))
    assert second_request.rows_limit == 2


def test_no_duplicates_across_batches(table):
    """Test the boundary key is never yielded twice."""
    keys = [row.key for row in ScanCursor(table, LOCATOR, ALL_ROWS, batch_size=4)]

    assert len(keys) == len(set(keys))


def test_all_rows_resumes_with_open_range(table):
    cursor = ScanCursor(table, LOCATOR, ALL_ROWS, batch_size=5)
    list(cursor)

    assert table.requests[0].row_set is ALL_ROWS
    assert table.requests[1].row_set == RowSet(ranges=(RowRange(Bound.open(b"row4"), None),))


def test_keys_only_row_set_resumes_on_remaining_keys(table):
    """Test a key list is consumed without refetching yielded keys."""
    cursor = ScanCursor(table, LOCATOR, row_set([b"row7", b"row2", b"row5"]), batch_size=2)

    keys = [row.key for row in cursor]

    assert keys == [b"row2", b"row5", b"row7"]
    assert table.requests[1].row_set.keys == (b"row7",)


def test_keys_only_row_set_exhausted_without_extra_fetch(table):
    cursor = ScanCursor(table, LOCATOR, row_set([b"row1", b"row3"]), batch_size=2)

    assert [row.key for row in cursor] == [b"row1", b"row3"]
    assert len(table.requests) == 1


def test_mixed_keys_and_ranges_yield_each_row_once():
    """Test explicit keys are not refetched once the scan has passed them."""
    t = InMemoryTable()
    for key in (b"a", b"m", b"n", b"o"):
        t.set_cell(key, "cf", b"q", b"v", timestamp=1)
    rs = RowSet(keys=(b"a",), ranges=(row_range(b"m", b"z"),))

    keys = [row.key for row in islice(ScanCursor(t, LOCATOR, rs, batch_size=2), 12)]

    assert keys == [b"a", b"m", b"n", b"o"]
    assert t.requests[1].row_set == RowSet(ranges=(RowRange(Bound.open(b"m"), Bound.open(b"z")),))


def test_key_before_first_range_does_not_widen_it():
    t = InMemoryTable()
    for key in (b"a", b"c", b"m"):
        t.set_cell(key, "cf", b"q", b"v", timestamp=1)
    rs = RowSet(keys=(b"a",), ranges=(row_range(b"m", b"z"),))

    keys = [row.key for row in ScanCursor(t, LOCATOR, rs, batch_size=1)]

    assert keys == [b"a", b"m"]


class KeylessFetcher:
    """Always answers with one committed row that carries no key."""

    def __init__(self):
        self.calls = 0

    def fetch_batch(self, locator, row_set, row_filter, rows_limit, cancel=None):
        self.calls += 1
        return [ChunkEvent(family="cf", qualifier=b"q", timestamp=1, value=b"v", status=RowStatus.COMMIT)]


def test_batch_without_progress_ends_scan():
    """Test keyless rows are yielded once and the scan then stops."""
    fetcher = KeylessFetcher()
    cursor = ScanCursor(fetcher, LOCATOR, ALL_ROWS, batch_size=1)

    rows = list(islice(cursor, 50))

    assert len(rows) == 1
    assert rows[0].key is None
    assert fetcher.calls == 1
    assert cursor.exhausted


def test_empty_range_terminates_without_error(table):
    """Test a range with no rows ends after one empty batch."""
    cursor = ScanCursor(table, LOCATOR, row_set_from_ranges([row_range(b"x", b"y")]), batch_size=10)

    assert list(cursor) == []
    assert cursor.exhausted
    assert len(table.requests) == 1


def test_empty_row_set_never_fetches(table):
    """Test an empty row set is exhausted from the start."""
    cursor = ScanCursor(table, LOCATOR, RowSet(), batch_size=10)

    assert cursor.exhausted
    assert list(cursor) == []
    assert table.requests == []


def test_fetch_error_raised_once_then_stops():
    """Test a failed fetch surfaces as ScanError, then the cursor is done."""
    fetcher = FailingFetcher([
        ChunkEvent(row_key=b"a", family="cf", qualifier=b"q", timestamp=1, value=b"1", status=RowStatus.COMMIT),
    ])
    cursor = ScanCursor(fetcher, LOCATOR, ALL_ROWS, batch_size=1)

    assert next(cursor).key == b"a"
    with pytest.raises(ScanError) as exc_info:
        next(cursor)
    assert isinstance(exc_info.value.__cause__, ConnectionError)

    with pytest.raises(StopIteration):
        next(cursor)
    assert fetcher.calls == 2


def test_close_signals_cancellation():
    """Test close sets the event passed to the fetcher and ends the scan."""
    fetcher = CancelAwareFetcher()
    cursor = ScanCursor(fetcher, LOCATOR, ALL_ROWS, batch_size=1)

    next(cursor)
    event = fetcher.cancels[0]
    assert not event.is_set()

    cursor.close()

    assert event.is_set()
    assert cursor.exhausted
    assert list(cursor) == []
    assert len(fetcher.cancels) == 1


def test_context_manager_closes(table):
    with ScanCursor(table, LOCATOR, ALL_ROWS, batch_size=3) as cursor:
        next(cursor)

    assert cursor.exhausted
    assert list(cursor) == []


def test_filter_passed_through_unchanged(table):
    flt = cells_per_column_limit_filter(1)

    list(ScanCursor(table, LOCATOR, ALL_ROWS, row_filter=flt, batch_size=4))

    assert [r.row_filter for r in table.requests] == [flt, flt, flt, flt]
    assert all(r.locator == LOCATOR for r in table.requests)


@pytest.mark.parametrize("batch_size", [0, -1])
def test_invalid_batch_size(table, batch_size):
    with pytest.raises(ValueError):
        ScanCursor(table, LOCATOR, ALL_ROWS, batch_size=batch_size)


def test_open_classmethod(table):
    cursor = ScanCursor.open(table, LOCATOR, batch_size=100)

    assert len(list(cursor)) == 10
    assert cursor.state.batches == 2
