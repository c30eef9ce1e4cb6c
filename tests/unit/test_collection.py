"""Tests for DumpCollection."""

from pathlib import Path

from nethook_analyzer.core.collection import DumpCollection
from nethook_analyzer.core.importer.loader import load_dump
from nethook_analyzer.core.tree.projector import get_tree


def test_sequence_protocol(dump_dir: Path) -> None:
    collection = load_dump(dump_dir)

    assert len(collection) == 4
    assert collection[0].sequence == 1
    assert [r.sequence for r in collection[1:3]] == [2, 3]
    assert collection[-1].sequence == 10
    assert collection.directory == dump_dir
    assert collection.skipped == ("notes.txt",)
    assert "incomplete" not in repr(collection)


def test_find_by_sequence(dump_dir: Path) -> None:
    collection = load_dump(dump_dir)
    record = collection.find(3)
    assert record is not None
    assert record.name == "3_in_751_k_EMsgClientLogOnResponse.bin"
    assert collection.find(4) is None


def test_tree_is_cached_and_matches_direct_projection(dump_dir: Path) -> None:
    collection = load_dump(dump_dir)
    record = collection[3]

    first = collection.tree(record)
    assert collection.tree(record) is first
    assert first == get_tree(record)


def test_tree_cache_is_bounded(dump_dir: Path) -> None:
    loaded = load_dump(dump_dir)
    collection = DumpCollection(dump_dir, loaded, cache_size=2)

    trees = [collection.tree(r) for r in collection]

    assert collection.tree(collection[3]) is trees[3]
    assert collection.tree(collection[0]) is not trees[0]
    assert collection.tree(collection[0]) == trees[0]


def test_records_are_immutable(dump_dir: Path) -> None:
    collection = load_dump(dump_dir)
    assert isinstance(collection.records, tuple)
    assert not hasattr(collection, "append")
