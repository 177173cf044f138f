"""Unit tests for filter descriptors and their in-memory evaluation."""

import pytest

from widecol.components import filters as f
from widecol.components.chunks import assemble_rows
from widecol.components.memory import InMemoryTable
from widecol.core.ranges import ALL_ROWS
from widecol.core.types import TableLocator

LOCATOR = TableLocator("proj", "inst", "users")


@pytest.fixture
def table():
    """Create a small table with two families and multiple versions."""
    t = InMemoryTable(seed=7)
    t.set_cell(b"user#1", "info", b"name", b"alice", timestamp=100)
    t.set_cell(b"user#1", "info", b"name", b"alicia", timestamp=200)
    t.set_cell(b"user#1", "info", b"email", b"a@example.com", timestamp=100)
    t.set_cell(b"user#1", "stats", b"visits", b"\x00\x05", timestamp=150)
    t.set_cell(b"user#2", "info", b"name", b"bob", timestamp=300)
    t.set_cell(b"order#9", "info", b"total", b"42", timestamp=50)
    return t


def read(table, flt):
    return {row.key: row for row in assemble_rows(table.fetch_batch(LOCATOR, ALL_ROWS, flt, 0))}


def test_builders_normalize_patterns_to_bytes():
    """Test text patterns are UTF-8 encoded for byte-valued filters."""
    assert f.row_key_regex_filter("user#.*") == f.RowKeyRegex(b"user#.*")
    assert f.qualifier_regex_filter("na.*") == f.QualifierRegex(b"na.*")
    assert f.value_regex_filter("ali") == f.ValueRegex(b"ali")
    assert f.value_range_filter("a", "m") == f.ValueRange(b"a", b"m", True, False)


def test_exact_match_builders_escape_input():
    """Test family/column filters match names literally."""
    assert f.family_filter("a.b") == f.FamilyRegex(r"^a\.b$")
    assert f.column_filter("cf", b"q+") == f.Chain((f.FamilyRegex("^cf$"), f.QualifierRegex(rb"^q\+$")))


def test_composers_store_tuples():
    chain = f.chain_filters([f.pass_all_filter(), f.strip_value_filter()])
    interleave = f.interleave_filters(iter([f.block_all_filter()]))

    assert chain.filters == (f.PassAll(), f.StripValue())
    assert interleave.filters == (f.BlockAll(),)
    assert f.condition_filter(f.pass_all_filter()) == f.Condition(f.PassAll(), None, None)


@pytest.mark.parametrize(
    "builder,arg",
    [
        (f.cells_per_column_limit_filter, 0),
        (f.cells_per_row_limit_filter, -1),
        (f.cells_per_row_offset_filter, -1),
        (f.row_sample_filter, 1.5),
        (f.row_sample_filter, -0.1),
    ],
)
def test_invalid_numeric_arguments(builder, arg):
    with pytest.raises(ValueError):
        builder(arg)


def test_filters_are_hashable_values():
    assert {f.family_filter("cf"), f.family_filter("cf")} == {f.family_filter("cf")}


def test_no_filter_returns_everything(table):
    assert set(read(table, None)) == {b"order#9", b"user#1", b"user#2"}


def test_row_key_regex(table):
    assert set(read(table, f.row_key_regex_filter(b"^user#"))) == {b"user#1", b"user#2"}


def test_family_filter(table):
    rows = read(table, f.family_filter("stats"))

    assert set(rows) == {b"user#1"}
    assert [fam.name for fam in rows[b"user#1"].families] == ["stats"]


def test_column_filter(table):
    rows = read(table, f.column_filter("info", "name"))

    assert set(rows) == {b"user#1", b"user#2"}
    assert [v.value for v in rows[b"user#1"].cells("info", "name")] == [b"alicia", b"alice"]
    assert rows[b"user#1"].cells("info", "email") == ()


def test_latest_version_only(table):
    rows = read(table, f.cells_per_column_limit_filter(1))

    assert rows[b"user#1"].cells("info", "name")[0].value == b"alicia"
    assert len(rows[b"user#1"].cells("info", "name")) == 1


def test_timestamp_range_is_half_open(table):
    rows = read(table, f.timestamp_range_filter(100, 200))

    assert set(rows) == {b"user#1"}
    assert [c.timestamp for c in rows[b"user#1"].cells("info", "name")] == [100]
    assert rows[b"user#1"].get_cell("stats", "visits") == b"\x00\x05"


def test_value_range_and_regex(table):
    assert set(read(table, f.value_range_filter(b"b", b"c"))) == {b"user#2"}
    assert set(read(table, f.value_range_filter(b"bob", b"bob", end_inclusive=True))) == {b"user#2"}
    assert set(read(table, f.value_regex_filter(b"@example"))) == {b"user#1"}


def test_chain_and_interleave(table):
    chained = f.chain_filters([f.family_filter("info"), f.qualifier_regex_filter(b"^email$")])
    either = f.interleave_filters([f.column_filter("info", "email"), f.column_filter("info", "total")])

    assert set(read(table, chained)) == {b"user#1"}
    assert set(read(table, either)) == {b"user#1", b"order#9"}


def test_condition_chooses_branch_per_row(table):
    """Test rows with a stats family are labelled, the rest stripped."""
    cond = f.condition_filter(
        f.family_filter("stats"),
        f.apply_label_filter("active"),
        f.strip_value_filter(),
    )

    rows = read(table, cond)

    assert rows[b"user#1"].cells("info", "email")[0].labels == ("active",)
    assert rows[b"user#2"].get_cell("info", "name") == b""


def test_condition_without_branch_blocks(table):
    rows = read(table, f.condition_filter(f.family_filter("stats"), f.pass_all_filter()))

    assert set(rows) == {b"user#1"}


def test_row_limits_and_offset(table):
    limited = read(table, f.cells_per_row_limit_filter(1))
    offset = read(table, f.cells_per_row_offset_filter(1))

    assert limited[b"user#1"].to_dict() == {"info": {b"email": b"a@example.com"}}
    assert set(offset) == {b"user#1"}


def test_block_all_and_sample_bounds(table):
    assert read(table, f.block_all_filter()) == {}
    assert read(table, f.row_sample_filter(0.0)) == {}
    assert len(read(table, f.row_sample_filter(1.0))) == 3


def test_unknown_filter_rejected(table):
    with pytest.raises(TypeError):
        read(table, object())
