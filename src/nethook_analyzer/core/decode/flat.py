"""Decode fixed-layout legacy structs."""

import struct

from nethook_analyzer.core.decode.context import DecodeContext
from nethook_analyzer.core.schema.registry import FlatLayout
from nethook_analyzer.errors import TruncatedBody
from nethook_analyzer.models.decoded import Field, FlatStruct, Truncation


def decode_flat(data: bytes, layout: FlatLayout, ctx: DecodeContext) -> FlatStruct:
    """Unpack ``layout``'s fields in order; leftover bytes become the trailer.

    A buffer shorter than the layout keeps the fields that fit and marks the
    rest as truncated.
    """
    fields: list[Field] = []
    offset = 0
    for lf in layout.fields:
        fmt = struct.Struct("<" + lf.format)
        if offset + fmt.size > len(data):
            exc = TruncatedBody(offset, fmt.size, len(data) - offset)
            return FlatStruct(layout.name, tuple(fields), truncation=Truncation(offset, str(exc)))

        (value,) = fmt.unpack_from(data, offset)
        display = None
        if lf.enum and isinstance(value, int):
            label = ctx.registry.enum_name(lf.enum, value)
            if label is not None:
                display = f"{value} ({label})"
        fields.append(Field(lf.name, value, display=display))
        offset += fmt.size

    trailer = None
    if offset < len(data):
        trailer = Field(layout.trailer or "trailing_bytes", data[offset:])
    return FlatStruct(layout.name, tuple(fields), trailer=trailer)
