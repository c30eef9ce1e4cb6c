"""Tests for loading a dump directory."""

import threading
from pathlib import Path
from typing import Any

import pytest

from nethook_analyzer.core.importer import loader
from nethook_analyzer.core.importer.loader import list_records, load_dump
from nethook_analyzer.errors import DirectoryUnreadable
from nethook_analyzer.models.record import Direction, RawRecord
from tests.unit.conftest import SESSION_FILES, write_dump
from tests.unit.packets import protobuf_packet


def test_skips_non_dump_files_and_orders_by_sequence(tmp_path: Path) -> None:
    """Non-dump names are skipped and records come back in sequence order."""
    directory = write_dump(
        tmp_path,
        {
            "2_in_751_k_EMsgClientLogOnResponse.bin": protobuf_packet(751),
            "1_out_5514_k_EMsgClientLogon.bin": protobuf_packet(5514),
            "x_bad_name": b"junk",
        },
    )

    collection = load_dump(directory)

    assert [r.sequence for r in collection] == [1, 2]
    assert collection.skipped == ("x_bad_name",)
    assert collection.complete


def test_sequence_is_numeric_not_lexical(tmp_path: Path) -> None:
    """Sequence 10 sorts after 2."""
    directory = write_dump(
        tmp_path,
        {
            "10_in_1_k_EMsgMulti.bin": b"",
            "2_out_9805_k_EMsgClientHello.bin": b"",
            "1_out_9805_k_EMsgClientHello.bin": b"",
        },
    )
    assert [r.sequence for r in list_records(directory)] == [1, 2, 10]


def test_record_fields(dump_dir: Path) -> None:
    """Records carry the parsed filename metadata and the file bytes."""
    records = list_records(dump_dir)
    logon = records[1]

    assert logon.path == dump_dir / "2_out_5514_k_EMsgClientLogon.bin"
    assert logon.direction == Direction.OUT
    assert logon.type_discriminator == 5514
    assert logon.type_name_fragment == "ClientLogon"
    assert logon.inner_type_name == "ClientLogon"
    assert logon.payload == SESSION_FILES["2_out_5514_k_EMsgClientLogon.bin"]


def test_unknown_emsg_has_no_inner_type_name(tmp_path: Path) -> None:
    """An EMsg missing from the registry keeps only the filename's type name."""
    directory = write_dump(tmp_path, {"1_in_31337_k_EMsgSomethingNew.bin": b"\x00"})
    (record,) = list_records(directory)
    assert record.inner_type_name is None
    assert record.display_type == "SomethingNew"


def test_malformed_type_is_loaded_without_type(tmp_path: Path) -> None:
    """A bad type part loses the type but keeps the record."""
    directory = write_dump(tmp_path, {"3_in_abc.bin": b"\x01"})
    (record,) = list_records(directory)
    assert record.sequence == 3
    assert record.type_discriminator is None
    assert record.display_type == "unknown"


def test_subdirectories_are_ignored(tmp_path: Path) -> None:
    """Directories are neither loaded nor reported as skipped."""
    write_dump(tmp_path, {"1_in_766.bin": b""})
    (tmp_path / "2_in_766.bin").with_suffix(".d").mkdir()
    (tmp_path / "9_out_9805").mkdir()
    collection = load_dump(tmp_path)
    assert [r.sequence for r in collection] == [1]
    assert collection.skipped == ()


def test_empty_directory(tmp_path: Path) -> None:
    """An empty directory loads as a complete, empty collection."""
    collection = load_dump(tmp_path)
    assert len(collection) == 0
    assert collection.complete


def test_missing_directory_raises(tmp_path: Path) -> None:
    """A directory that cannot be listed raises DirectoryUnreadable."""
    with pytest.raises(DirectoryUnreadable):
        load_dump(tmp_path / "does-not-exist")


def test_single_worker_gives_same_order(dump_dir: Path) -> None:
    """The worker count does not change the result."""
    parallel = load_dump(dump_dir)
    serial = load_dump(dump_dir, workers=1)
    assert list(parallel) == list(serial)


def test_cancel_returns_partial_result(dump_dir: Path) -> None:
    """A set cancel event ends the load early with a sorted partial result."""
    cancel = threading.Event()
    cancel.set()

    collection = load_dump(dump_dir, cancel=cancel)

    assert not collection.complete
    assert len(collection) < 4
    assert [r.sequence for r in collection] == sorted(r.sequence for r in collection)


def test_timeout_keeps_records_read_so_far(
    dump_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A load cut off by its timeout keeps the records already read."""
    release = threading.Event()
    read_record = loader._read_record

    def slow_multi(path: Path, *args: Any) -> RawRecord | None:
        if path.name.startswith("10_"):
            release.wait(timeout=10)
        return read_record(path, *args)

    monkeypatch.setattr(loader, "_read_record", slow_multi)
    try:
        collection = load_dump(dump_dir, timeout=0.5)
    finally:
        release.set()

    assert not collection.complete
    assert [r.sequence for r in collection] == [1, 2, 3]
