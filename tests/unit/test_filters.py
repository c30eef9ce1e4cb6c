"""Tests for record filtering."""

from pathlib import Path

import pytest

from nethook_analyzer.core.importer.loader import list_records
from nethook_analyzer.core.search.filters import filter_records


def test_no_filter_keeps_everything_in_order(dump_dir: Path) -> None:
    records = list_records(dump_dir)
    assert filter_records(records) == list(records)


def test_direction_filter(dump_dir: Path) -> None:
    records = list_records(dump_dir)
    assert [r.sequence for r in filter_records(records, direction="out")] == [1, 2]
    assert [r.sequence for r in filter_records(records, direction="in")] == [3, 10]


def test_query_is_case_insensitive_substring(dump_dir: Path) -> None:
    records = list_records(dump_dir)
    assert [r.sequence for r in filter_records(records, query="logon")] == [2, 3]
    assert [r.sequence for r in filter_records(records, query="MULTI")] == [10]
    assert filter_records(records, query="nothing-matches") == []


def test_query_matches_inner_type_name(tmp_path: Path) -> None:
    (tmp_path / "1_in_766.bin").write_bytes(b"")
    records = list_records(tmp_path)
    assert [r.name for r in filter_records(records, query="personastate")] == ["1_in_766.bin"]


def test_query_and_direction_combine(dump_dir: Path) -> None:
    records = list_records(dump_dir)
    assert [r.sequence for r in filter_records(records, query="logon", direction="in")] == [3]


def test_bad_direction_raises(dump_dir: Path) -> None:
    with pytest.raises(ValueError, match="direction"):
        filter_records(list_records(dump_dir), direction="sideways")
