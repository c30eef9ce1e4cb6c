"""Tests for domain models."""

import dataclasses
from pathlib import Path

import pytest

from nethook_analyzer.models.decoded import (
    DecodedPacket,
    DecodedRecord,
    Field,
    RepeatedField,
    StructuredFields,
)
from nethook_analyzer.models.record import Direction, RawRecord
from nethook_analyzer.models.tree import TreeNode


def _record(**overrides: object) -> RawRecord:
    values: dict[str, object] = {
        "path": Path("/d/1_in_766_k_EMsgClientPersonaState.bin"),
        "sequence": 1,
        "direction": Direction.IN,
        "type_discriminator": 766,
        "type_name_fragment": "ClientPersonaState",
        "payload": b"\x01",
    }
    values.update(overrides)
    return RawRecord(**values)  # type: ignore[arg-type]


def test_raw_record_is_frozen() -> None:
    record = _record()
    with pytest.raises(dataclasses.FrozenInstanceError):
        record.payload = b""  # type: ignore[misc]


def test_raw_record_name_and_display_type() -> None:
    assert _record().name == "1_in_766_k_EMsgClientPersonaState.bin"
    assert _record().display_type == "ClientPersonaState"
    assert _record(inner_type_name="ClientPersonaState2").display_type == "ClientPersonaState2"
    assert _record(type_name_fragment=None).display_type == "unknown"


def test_raw_record_repr_omits_payload() -> None:
    assert "payload" not in repr(_record(payload=b"\x00" * 1000))


def test_decoded_record_falls_back_to_filename_type() -> None:
    decoded = DecodedRecord(_record(), DecodedPacket(b"\x01", header_error="short"))
    assert decoded.message_type == 766
    assert decoded.packet.size == 1


def test_structured_fields_get() -> None:
    fields = StructuredFields(
        "M",
        (Field("a", 1), RepeatedField("b", 2, (Field("b", 1), Field("b", 2)))),
    )
    assert fields.get("a") == Field("a", 1)
    assert isinstance(fields.get("b"), RepeatedField)
    assert fields.get("c") is None


def test_tree_node_helpers() -> None:
    leaf = TreeNode("leaf", "1")
    tree = TreeNode("root", children=(TreeNode("mid", children=(leaf,)),))
    assert leaf.is_leaf
    assert not tree.is_leaf
    assert tree.depth() == 3
    assert tree.child("mid") is tree.children[0]
    assert tree.child("leaf") is None
