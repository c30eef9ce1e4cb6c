"""Shared test fixtures."""

from pathlib import Path

import pytest

from tests.unit.packets import (
    f_bytes,
    f_fixed64,
    f_varint,
    multi_body,
    protobuf_packet,
)

FRIEND_ID = 76561197960287930

LOGON_BODY = f_varint(1, 65580) + f_varint(3, 42) + f_bytes(50, "gaben")
LOGON_RESPONSE_BODY = f_varint(1, 1) + f_varint(3, 9)
PERSONA_BODY = f_varint(1, 1106) + f_bytes(2, f_fixed64(1, FRIEND_ID) + f_varint(2, 1))
CM_LIST_BODY = f_varint(1, 0x0A000001) + f_varint(1, 0x0A000002) + f_varint(2, 27017)

SESSION_FILES: dict[str, bytes] = {
    "1_out_9805_k_EMsgClientHello.bin": protobuf_packet(9805, f_varint(1, 65580)),
    "2_out_5514_k_EMsgClientLogon.bin": protobuf_packet(
        5514, LOGON_BODY, steamid=FRIEND_ID, session=0
    ),
    "3_in_751_k_EMsgClientLogOnResponse.bin": protobuf_packet(
        751, LOGON_RESPONSE_BODY, steamid=FRIEND_ID, session=77
    ),
    "10_in_1_k_EMsgMulti.bin": protobuf_packet(
        1,
        multi_body(
            [protobuf_packet(766, PERSONA_BODY), protobuf_packet(783, CM_LIST_BODY)],
            compress=True,
        ),
    ),
    "notes.txt": b"not a dump file",
}


def write_dump(directory: Path, files: dict[str, bytes]) -> Path:
    """Write ``files`` into ``directory`` (created if needed) and return it."""
    directory.mkdir(parents=True, exist_ok=True)
    for name, payload in files.items():
        (directory / name).write_bytes(payload)
    return directory


@pytest.fixture
def dump_dir(tmp_path: Path) -> Path:
    """Return a session directory with four dump files and one stray file."""
    return write_dump(tmp_path / "2024_01_01_12_00_00", SESSION_FILES)
