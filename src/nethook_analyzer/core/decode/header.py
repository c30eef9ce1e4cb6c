"""Decode the message envelope at the front of every packet."""

import struct

from nethook_analyzer.core.decode.context import DecodeContext
from nethook_analyzer.core.decode.protobuf import decode_message
from nethook_analyzer.core.schema.registry import FieldSpec, MessageSchema
from nethook_analyzer.errors import TruncatedHeader
from nethook_analyzer.models.decoded import (
    CorrelationId,
    DecodedHeader,
    Field,
    HeaderKind,
)

PROTO_MASK = 0x80000000
NO_JOB_ID = 0xFFFFFFFFFFFFFFFF

# Legacy handshake messages use the short MsgHdr envelope.
MSG_HDR_EMSGS = frozenset({1303, 1304, 1305})

_EMSG = struct.Struct("<I")
_PROTO_PREFIX = struct.Struct("<Ii")
_MSG_HDR = struct.Struct("<IQQ")
_EXTENDED_HDR = struct.Struct("<IBHQQBQi")

PROTOBUF_HEADER_SCHEMA = MessageSchema(
    "CMsgProtoBufHeader",
    (
        FieldSpec(1, "steamid", "fixed64"),
        FieldSpec(2, "client_sessionid", "int32"),
        FieldSpec(3, "routing_appid", "uint32"),
        FieldSpec(10, "jobid_source", "fixed64"),
        FieldSpec(11, "jobid_target", "fixed64"),
        FieldSpec(12, "target_job_name", "string"),
        FieldSpec(13, "seq_num", "int32"),
        FieldSpec(24, "eresult", "int32"),
        FieldSpec(25, "error_message", "string"),
        FieldSpec(26, "ip", "uint32"),
        FieldSpec(32, "messageid", "fixed64"),
        FieldSpec(35, "trace_tag", "uint64"),
        FieldSpec(37, "realm", "uint32"),
        FieldSpec(38, "timeout_ms", "int64"),
    ),
)


def _job_id(name: str, value: int | None) -> CorrelationId:
    return CorrelationId(name, None if value is None or value == NO_JOB_ID else value)


def _need(payload: bytes, size: int, what: str) -> None:
    if len(payload) < size:
        msg = f"{what} needs {size} bytes, payload has {len(payload)}"
        raise TruncatedHeader(msg)


def decode_header(payload: bytes) -> DecodedHeader:
    """Decode the envelope and report exactly how many bytes it spans.

    Raises:
        TruncatedHeader: The payload ends before the header does.
    """
    _need(payload, _EMSG.size, "EMsg")
    (raw_emsg,) = _EMSG.unpack_from(payload)
    emsg = raw_emsg & ~PROTO_MASK

    if raw_emsg & PROTO_MASK:
        return _decode_protobuf_header(payload, emsg)
    if emsg in MSG_HDR_EMSGS:
        return _decode_msg_hdr(payload, emsg)
    return _decode_extended_header(payload, emsg)


def _decode_msg_hdr(payload: bytes, emsg: int) -> DecodedHeader:
    _need(payload, _MSG_HDR.size, HeaderKind.MSG_HDR)
    _, target, source = _MSG_HDR.unpack_from(payload)
    return DecodedHeader(
        message_type=emsg,
        is_protobuf=False,
        kind=HeaderKind.MSG_HDR,
        correlation_ids=(_job_id("target_job_id", target), _job_id("source_job_id", source)),
        header_byte_length=_MSG_HDR.size,
    )


def _decode_extended_header(payload: bytes, emsg: int) -> DecodedHeader:
    _need(payload, _EXTENDED_HDR.size, HeaderKind.EXTENDED)
    (_, size, version, target, source, canary, steam_id, session_id) = (
        _EXTENDED_HDR.unpack_from(payload)
    )
    return DecodedHeader(
        message_type=emsg,
        is_protobuf=False,
        kind=HeaderKind.EXTENDED,
        correlation_ids=(_job_id("target_job_id", target), _job_id("source_job_id", source)),
        header_byte_length=_EXTENDED_HDR.size,
        fields=(
            Field("header_size", size),
            Field("header_version", version),
            Field("header_canary", canary),
            Field("steam_id", steam_id),
            Field("session_id", session_id),
        ),
    )


def _decode_protobuf_header(payload: bytes, emsg: int) -> DecodedHeader:
    _need(payload, _PROTO_PREFIX.size, HeaderKind.PROTOBUF)
    _, header_length = _PROTO_PREFIX.unpack_from(payload)
    if header_length < 0:
        msg = f"negative protobuf header length {header_length}"
        raise TruncatedHeader(msg)

    total = _PROTO_PREFIX.size + header_length
    _need(payload, total, HeaderKind.PROTOBUF)

    proto = decode_message(
        payload[_PROTO_PREFIX.size : total], PROTOBUF_HEADER_SCHEMA, DecodeContext()
    )
    if proto.truncation is not None:
        msg = f"CMsgProtoBufHeader is cut short: {proto.truncation.reason}"
        raise TruncatedHeader(msg)

    values = {f.name: f.value for f in proto.fields if isinstance(f, Field)}
    source = values.get("jobid_source")
    target = values.get("jobid_target")
    job_name = values.get("target_job_name")
    return DecodedHeader(
        message_type=emsg,
        is_protobuf=True,
        kind=HeaderKind.PROTOBUF,
        correlation_ids=(
            _job_id("target_job_id", target if isinstance(target, int) else None),
            _job_id("source_job_id", source if isinstance(source, int) else None),
        ),
        header_byte_length=total,
        fields=tuple(f for f in proto.fields if f.name not in ("jobid_source", "jobid_target")),
        target_job_name=job_name if isinstance(job_name, str) else None,
    )
