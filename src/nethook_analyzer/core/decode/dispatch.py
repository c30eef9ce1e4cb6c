"""Select and run a body decoder by message type.

The registry maps each EMsg to a Strategy; STRATEGIES maps each Strategy to
the function that decodes it. An EMsg with no entry, or a name-only entry,
is not an error: its body is kept as UnknownBody.
"""

import zlib

from nethook_analyzer.core.decode.context import DecodeContext, InflateBudget
from nethook_analyzer.core.decode.flat import decode_flat
from nethook_analyzer.core.decode.header import decode_header
from nethook_analyzer.core.decode.protobuf import decode_message
from nethook_analyzer.core.decode.wire import read_bytes, read_u32
from nethook_analyzer.core.schema.registry import (
    MessageEntry,
    SchemaRegistry,
    Strategy,
    default_registry,
)
from nethook_analyzer.errors import TruncatedBody, TruncatedHeader
from nethook_analyzer.models.decoded import (
    DecodedBody,
    DecodedHeader,
    DecodedPacket,
    DecodedRecord,
    Nested,
    PacketStream,
    Truncation,
    UnknownBody,
)
from nethook_analyzer.models.record import RawRecord
from nethook_analyzer.protocols import BodyStrategy

GZIP_MAGIC = b"\x1f\x8b"


def _protobuf_body(
    entry: MessageEntry, data: bytes, header: DecodedHeader | None, ctx: DecodeContext
) -> DecodedBody:
    return decode_message(data, ctx.registry.message(entry.target or ""), ctx)


def _layout_body(
    entry: MessageEntry, data: bytes, header: DecodedHeader | None, ctx: DecodeContext
) -> DecodedBody:
    return decode_flat(data, ctx.registry.layout(entry.target or ""), ctx)


def _service_body(
    entry: MessageEntry, data: bytes, header: DecodedHeader | None, ctx: DecodeContext
) -> DecodedBody:
    """Pick the request or response schema of the method named in the header."""
    method_name = header.target_job_name if header else None
    method = ctx.registry.service(method_name) if method_name else None
    schema_name = None
    if method is not None:
        schema_name = method.response if entry.target == "response" else method.request
    schema = ctx.registry.messages.get(schema_name) if schema_name else None
    return decode_message(data, schema, ctx)


STRATEGIES: dict[Strategy, BodyStrategy] = {
    Strategy.PROTOBUF: _protobuf_body,
    Strategy.LAYOUT: _layout_body,
    Strategy.SERVICE: _service_body,
}


def _inflate(data: bytes, budget: InflateBudget) -> bytes:
    """Inflate one gzip stream, charging its output to the record's budget."""
    limit = budget.remaining
    if limit <= 0:
        msg = "inflate budget exhausted"
        raise ValueError(msg)
    inflater = zlib.decompressobj(wbits=16 + zlib.MAX_WBITS)
    out = inflater.decompress(data, limit)
    if inflater.unconsumed_tail or (not inflater.eof and len(out) >= limit):
        msg = "inflate budget exhausted"
        raise ValueError(msg)
    if not inflater.eof:
        msg = "gzip stream ends early"
        raise ValueError(msg)
    budget.spend(len(out))
    return out


def decode_packet_stream(data: bytes, ctx: DecodeContext) -> PacketStream:
    """Decode ``[u32 size][packet]...`` records, inflating gzip input first."""
    compressed = data[:2] == GZIP_MAGIC
    if compressed:
        try:
            data = _inflate(data, ctx.inflate_budget)
        except (zlib.error, ValueError) as exc:
            truncation = Truncation(0, f"cannot inflate: {exc}")
            return PacketStream((), compressed=True, truncation=truncation)

    packets: list[DecodedPacket] = []
    offset = 0
    truncation: Truncation | None = None
    while offset < len(data):
        try:
            size, prefix = read_u32(data, offset)
            chunk, chunk_size = read_bytes(data, offset + prefix, size)
        except TruncatedBody as exc:
            truncation = Truncation(exc.offset, str(exc))
            break
        packets.append(_decode_packet(chunk, ctx))
        offset += prefix + chunk_size

    return PacketStream(tuple(packets), compressed=compressed, truncation=truncation)


def _embed(kind: str, data: bytes, ctx: DecodeContext) -> Nested | None:
    if kind == "packets":
        return decode_packet_stream(data, ctx)
    return None


def _context(registry: SchemaRegistry | None, depth: int = 0) -> DecodeContext:
    return DecodeContext(registry=registry or default_registry(), depth=depth, embed=_embed)


def _decode_body(
    message_type: int, data: bytes, header: DecodedHeader | None, ctx: DecodeContext
) -> DecodedBody:
    entry = ctx.registry.lookup(message_type)
    strategy = STRATEGIES.get(entry.strategy) if entry else None
    if entry is None or strategy is None:
        return UnknownBody(data)
    return strategy(entry, data, header, ctx)


def _decode_packet(data: bytes, ctx: DecodeContext) -> DecodedPacket:
    try:
        header = decode_header(data)
    except TruncatedHeader as exc:
        return DecodedPacket(data, header_error=str(exc))
    body = _decode_body(header.message_type, data[header.header_byte_length :], header, ctx)
    return DecodedPacket(data, header=header, body=body)


def decode_body(
    message_type: int,
    data: bytes,
    *,
    header: DecodedHeader | None = None,
    registry: SchemaRegistry | None = None,
    depth: int = 0,
) -> DecodedBody:
    """Decode the bytes following a header according to ``message_type``."""
    return _decode_body(message_type, data, header, _context(registry, depth))


def decode_packet(
    data: bytes, *, registry: SchemaRegistry | None = None, depth: int = 0
) -> DecodedPacket:
    """Decode one packet: header first, then the body it selects."""
    return _decode_packet(data, _context(registry, depth))


def decode_record(record: RawRecord, *, registry: SchemaRegistry | None = None) -> DecodedRecord:
    """Decode a record's payload. The record itself is left untouched."""
    return DecodedRecord(record, decode_packet(record.payload, registry=registry))
