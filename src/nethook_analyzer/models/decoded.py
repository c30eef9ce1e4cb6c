"""Decoded header and body models.

Everything here is derived from a record's payload and never refers back
into it, so decoded values stay valid however often a record is decoded.
"""

from dataclasses import dataclass
from enum import StrEnum

from nethook_analyzer.models.record import RawRecord

Scalar = int | float | bool | str | bytes


class HeaderKind(StrEnum):
    """Envelope layout selected by the raw EMsg."""

    MSG_HDR = "MsgHdr"
    EXTENDED = "ExtendedClientMsgHdr"
    PROTOBUF = "MsgHdrProtoBuf"


@dataclass(frozen=True)
class CorrelationId:
    """A job id; ``value`` is None when the wire carried the "no job" sentinel."""

    name: str
    value: int | None


@dataclass(frozen=True)
class DecodedHeader:
    message_type: int
    is_protobuf: bool
    kind: HeaderKind
    correlation_ids: tuple[CorrelationId, ...]
    header_byte_length: int
    fields: tuple["Field | RepeatedField", ...] = ()
    target_job_name: str | None = None


@dataclass(frozen=True)
class Truncation:
    """Where and why a walk over a buffer stopped early."""

    offset: int
    reason: str


@dataclass(frozen=True)
class Field:
    """A single named value.

    ``display`` overrides the default formatting (enum names). ``nested`` is
    set when the value's bytes were themselves decoded.
    """

    name: str
    value: Scalar | None = None
    nested: "Nested | None" = None
    number: int | None = None
    display: str | None = None


@dataclass(frozen=True)
class RepeatedField:
    name: str
    number: int | None
    elements: tuple[Field, ...]


@dataclass(frozen=True)
class StructuredFields:
    """A message walked against a schema (or schemalessly when ``schema_name`` is None)."""

    schema_name: str | None
    fields: tuple[Field | RepeatedField, ...]
    truncation: Truncation | None = None

    def get(self, name: str) -> Field | RepeatedField | None:
        return next((f for f in self.fields if f.name == name), None)


@dataclass(frozen=True)
class FlatStruct:
    """A fixed-layout struct decoded into scalars, with an optional trailing blob."""

    layout_name: str
    fields: tuple[Field, ...]
    trailer: Field | None = None
    truncation: Truncation | None = None


@dataclass(frozen=True)
class UnknownBody:
    """Raw bytes of a body whose message type has no registered decoder."""

    data: bytes


DecodedBody = StructuredFields | FlatStruct | UnknownBody


@dataclass(frozen=True)
class DecodedPacket:
    """Header and body of one packet.

    ``header_error`` is set (and ``header``/``body`` are None) when the header
    could not be read; the body is then never attempted.
    """

    data: bytes
    header: DecodedHeader | None = None
    body: DecodedBody | None = None
    header_error: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class PacketStream:
    """Packets multiplexed inside another message's bytes."""

    packets: tuple[DecodedPacket, ...]
    compressed: bool = False
    truncation: Truncation | None = None


Nested = StructuredFields | PacketStream


@dataclass(frozen=True)
class DecodedRecord:
    record: RawRecord
    packet: DecodedPacket

    @property
    def message_type(self) -> int | None:
        """Wire EMsg when the header decoded, filename EMsg otherwise."""
        if self.packet.header is not None:
            return self.packet.header.message_type
        return self.record.type_discriminator
