"""Tests for dump file name parsing."""

import pytest

from nethook_analyzer.core.importer.filename import parse_type_part, split_dump_filename
from nethook_analyzer.errors import MalformedFilename
from nethook_analyzer.models.record import Direction


def test_full_name() -> None:
    parsed = split_dump_filename("017_in_766_k_EMsgClientPersonaState.bin")
    assert parsed is not None
    assert parsed.sequence == 17
    assert parsed.direction == Direction.IN
    assert parsed.type_discriminator == 766
    assert parsed.type_name_fragment == "ClientPersonaState"
    assert parsed.error is None


def test_name_without_fragment_or_extension() -> None:
    parsed = split_dump_filename("5_out_9805")
    assert parsed is not None
    assert parsed.direction == Direction.OUT
    assert parsed.type_discriminator == 9805
    assert parsed.type_name_fragment is None


def test_fragment_without_prefix_is_kept() -> None:
    parsed = split_dump_filename("5_out_9805_Hello_World.bin")
    assert parsed is not None
    assert parsed.type_name_fragment == "Hello_World"


@pytest.mark.parametrize(
    "name", ["x_bad_name", "notes.txt", "12_sideways_766.bin", "_in_766.bin", ".DS_Store"]
)
def test_non_dump_names_are_rejected(name: str) -> None:
    assert split_dump_filename(name) is None


@pytest.mark.parametrize("name", ["3_in_abc.bin", "3_in_.bin", "3_in_99999999999_Big.bin"])
def test_bad_type_part_keeps_sequence_and_direction(name: str) -> None:
    parsed = split_dump_filename(name)
    assert parsed is not None
    assert parsed.sequence == 3
    assert parsed.direction == Direction.IN
    assert parsed.type_discriminator is None
    assert parsed.error


def test_parse_type_part_raises() -> None:
    with pytest.raises(MalformedFilename):
        parse_type_part("k_EMsgClientHello")
    assert parse_type_part("751_k_EMsgClientLogOnResponse") == (751, "ClientLogOnResponse")
