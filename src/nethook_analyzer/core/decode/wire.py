"""Bounds-checked primitive readers.

Every reader takes ``(data, offset)`` and returns ``(value, consumed)`` so
callers always advance by exactly what was read. Reads past the end of
``data`` raise TruncatedBody instead of returning short values.
"""

import struct

from nethook_analyzer.errors import MalformedBody, TruncatedBody

_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_F32 = struct.Struct("<f")
_F64 = struct.Struct("<d")

MAX_VARINT_BYTES = 10

# Protobuf wire types.
WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LENGTH_DELIMITED = 2
WIRE_FIXED32 = 5


def require(data: bytes, offset: int, size: int) -> None:
    """Raise TruncatedBody unless ``size`` bytes are available at ``offset``."""
    available = max(len(data) - offset, 0)
    if size > available:
        raise TruncatedBody(offset, size, available)


def read_varint(data: bytes, offset: int) -> tuple[int, int]:
    value = 0
    shift = 0
    pos = offset
    while True:
        if pos >= len(data):
            raise TruncatedBody(offset, pos - offset + 1, len(data) - offset)
        byte = data[pos]
        value |= (byte & 0x7F) << shift
        pos += 1
        if not byte & 0x80:
            return value, pos - offset
        shift += 7
        if pos - offset >= MAX_VARINT_BYTES:
            raise MalformedBody(offset, "varint longer than 10 bytes")


def read_u32(data: bytes, offset: int) -> tuple[int, int]:
    require(data, offset, 4)
    return _U32.unpack_from(data, offset)[0], 4


def read_u64(data: bytes, offset: int) -> tuple[int, int]:
    require(data, offset, 8)
    return _U64.unpack_from(data, offset)[0], 8


def read_f32(data: bytes, offset: int) -> tuple[float, int]:
    require(data, offset, 4)
    return _F32.unpack_from(data, offset)[0], 4


def read_f64(data: bytes, offset: int) -> tuple[float, int]:
    require(data, offset, 8)
    return _F64.unpack_from(data, offset)[0], 8


def read_bytes(data: bytes, offset: int, size: int) -> tuple[bytes, int]:
    require(data, offset, size)
    return data[offset : offset + size], size


def read_length_delimited(data: bytes, offset: int) -> tuple[bytes, int]:
    """Read a varint length prefix and that many bytes; consumed includes the prefix."""
    length, prefix = read_varint(data, offset)
    value, size = read_bytes(data, offset + prefix, length)
    return value, prefix + size


def read_tag(data: bytes, offset: int) -> tuple[int, int, int]:
    """Read a protobuf field key, returning ``(field_number, wire_type, consumed)``."""
    key, consumed = read_varint(data, offset)
    number, wire_type = key >> 3, key & 0x07
    if number == 0:
        raise MalformedBody(offset, "field number 0")
    if wire_type not in (WIRE_VARINT, WIRE_FIXED64, WIRE_LENGTH_DELIMITED, WIRE_FIXED32):
        raise MalformedBody(offset, f"unsupported wire type {wire_type}")
    return number, wire_type, consumed


def to_signed(value: int, bits: int) -> int:
    """Reinterpret an unsigned integer as two's complement of the given width."""
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def zigzag(value: int) -> int:
    return (value >> 1) ^ -(value & 1)
