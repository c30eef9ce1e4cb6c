"""Tests for message header decoding."""

import struct

import pytest

from nethook_analyzer.core.decode.header import decode_header
from nethook_analyzer.errors import TruncatedHeader
from nethook_analyzer.models.decoded import CorrelationId, Field, HeaderKind
from tests.unit.packets import (
    NO_JOB,
    PROTO_MASK,
    extended_packet,
    msg_hdr_packet,
    proto_header,
    protobuf_packet,
)


def test_protobuf_header_reads_job_ids_and_length() -> None:
    hdr = proto_header(steamid=123, source=7, target=NO_JOB)
    payload = protobuf_packet(5514, b"\x08\x01", steamid=123, source=7, target=NO_JOB)

    header = decode_header(payload)

    assert header.message_type == 5514
    assert header.is_protobuf
    assert header.kind == HeaderKind.PROTOBUF
    assert header.header_byte_length == 8 + len(hdr)
    assert header.correlation_ids == (
        CorrelationId("target_job_id", None),
        CorrelationId("source_job_id", 7),
    )
    assert Field("steamid", 123, number=1) in header.fields
    assert all(f.name not in ("jobid_source", "jobid_target") for f in header.fields)


def test_protobuf_header_missing_job_ids_are_none() -> None:
    header = decode_header(protobuf_packet(9805))
    assert [c.value for c in header.correlation_ids] == [None, None]
    assert header.header_byte_length == 8


def test_protobuf_header_keeps_target_job_name() -> None:
    header = decode_header(protobuf_packet(151, job_name="Player.GetGameBadgeLevels#1"))
    assert header.target_job_name == "Player.GetGameBadgeLevels#1"


def test_extended_header() -> None:
    payload = extended_packet(9999, b"\x00" * 8, target=5, steam_id=42, session_id=-3)

    header = decode_header(payload)

    assert not header.is_protobuf
    assert header.kind == HeaderKind.EXTENDED
    assert header.header_byte_length == 36
    assert header.correlation_ids == (
        CorrelationId("target_job_id", 5),
        CorrelationId("source_job_id", None),
    )
    fields = {f.name: f.value for f in header.fields}
    assert fields["steam_id"] == 42
    assert fields["session_id"] == -3
    assert fields["header_canary"] == 239


def test_channel_encrypt_messages_use_short_header() -> None:
    header = decode_header(msg_hdr_packet(1303, b"\x01\x00\x00\x00", source=9))
    assert header.kind == HeaderKind.MSG_HDR
    assert header.header_byte_length == 20
    assert header.correlation_ids[1] == CorrelationId("source_job_id", 9)


def test_header_length_never_exceeds_payload() -> None:
    for payload in (protobuf_packet(9805), extended_packet(700), msg_hdr_packet(1305)):
        assert decode_header(payload).header_byte_length <= len(payload)


@pytest.mark.parametrize(
    "payload",
    [
        b"",
        b"\x01\x02",
        struct.pack("<I", 9805 | PROTO_MASK),
        struct.pack("<Ii", 9805 | PROTO_MASK, 50) + b"\x00" * 10,
        struct.pack("<Ii", 9805 | PROTO_MASK, -1),
        extended_packet(700)[:20],
        msg_hdr_packet(1303)[:12],
    ],
    ids=["empty", "short-emsg", "no-length", "overrun", "negative", "extended", "msghdr"],
)
def test_truncated_header_raises(payload: bytes) -> None:
    with pytest.raises(TruncatedHeader):
        decode_header(payload)


def test_protobuf_header_with_broken_inner_message_raises() -> None:
    broken = b"\x0a\x20abc"
    payload = struct.pack("<Ii", 9805 | PROTO_MASK, len(broken)) + broken
    with pytest.raises(TruncatedHeader, match="cut short"):
        decode_header(payload)
