"""Protobuf wire-format walker.

Walks a buffer field by field. With a schema, fields get their declared
names, types and enum labels and nested messages recurse; field numbers the
schema does not know (or a missing schema) are decoded by wire type alone.
A declared length that overruns the buffer stops the walk with a
Truncation, keeping everything decoded before it.
"""

from nethook_analyzer.core.decode.context import DecodeContext
from nethook_analyzer.core.decode.wire import (
    WIRE_FIXED32,
    WIRE_FIXED64,
    WIRE_LENGTH_DELIMITED,
    WIRE_VARINT,
    read_f32,
    read_f64,
    read_length_delimited,
    read_tag,
    read_u32,
    read_u64,
    read_varint,
    to_signed,
    zigzag,
)
from nethook_analyzer.core.schema.registry import FieldSpec, MessageSchema
from nethook_analyzer.errors import MalformedBody, TruncatedBody
from nethook_analyzer.models.decoded import (
    Field,
    RepeatedField,
    Scalar,
    StructuredFields,
    Truncation,
)


def decode_message(
    data: bytes, schema: MessageSchema | None, ctx: DecodeContext
) -> StructuredFields:
    """Decode ``data`` as one protobuf message."""
    by_number: dict[int, list[Field]] = {}
    offset = 0
    truncation: Truncation | None = None

    while offset < len(data):
        try:
            number, wire_type, tag_size = read_tag(data, offset)
            spec = schema.field_for(number) if schema else None
            fields, value_size = _decode_value(
                data, offset + tag_size, number, wire_type, spec, ctx
            )
        except (TruncatedBody, MalformedBody) as exc:
            truncation = Truncation(exc.offset, str(exc))
            break
        by_number.setdefault(number, []).extend(fields)
        offset += tag_size + value_size

    return StructuredFields(
        schema_name=schema.name if schema else None,
        fields=_collect(by_number, schema),
        truncation=truncation,
    )


def _collect(
    by_number: dict[int, list[Field]], schema: MessageSchema | None
) -> tuple[Field | RepeatedField, ...]:
    # Schema declaration order first, then unknown fields as first seen on the wire.
    known = [f.number for f in schema.fields if f.number in by_number] if schema else []
    unknown = [n for n in by_number if schema is None or schema.field_for(n) is None]

    result: list[Field | RepeatedField] = []
    for number in known + unknown:
        values = by_number[number]
        spec = schema.field_for(number) if schema else None
        if spec is not None and spec.repeated:
            result.append(RepeatedField(spec.name, number, tuple(values)))
        elif spec is not None or len(values) == 1:
            # Singular fields: last occurrence wins.
            result.append(values[-1])
        else:
            result.append(RepeatedField(values[0].name, number, tuple(values)))
    return tuple(result)


def _decode_value(
    data: bytes,
    offset: int,
    number: int,
    wire_type: int,
    spec: FieldSpec | None,
    ctx: DecodeContext,
) -> tuple[list[Field], int]:
    if spec is not None and spec.packable and wire_type == WIRE_LENGTH_DELIMITED:
        raw, size = read_length_delimited(data, offset)
        return _decode_packed(raw, offset, spec, ctx), size

    if spec is None or wire_type != spec.wire_type:
        name = spec.name if spec else f"field_{number}"
        field, size = _decode_untyped(data, offset, name, number, wire_type, ctx)
        return [field], size

    if wire_type == WIRE_LENGTH_DELIMITED:
        raw, size = read_length_delimited(data, offset)
        return [_decode_length_delimited(raw, spec, ctx)], size

    value, size = read_scalar(data, offset, spec.type)
    return [_scalar_field(spec, value, ctx)], size


def read_scalar(data: bytes, offset: int, type_name: str) -> tuple[Scalar, int]:
    """Read one non-length-delimited value of a protobuf scalar type."""
    if type_name in ("fixed64", "sfixed64"):
        raw, size = read_u64(data, offset)
        return (to_signed(raw, 64) if type_name == "sfixed64" else raw), size
    if type_name in ("fixed32", "sfixed32"):
        raw, size = read_u32(data, offset)
        return (to_signed(raw, 32) if type_name == "sfixed32" else raw), size
    if type_name == "double":
        return read_f64(data, offset)
    if type_name == "float":
        return read_f32(data, offset)

    raw, size = read_varint(data, offset)
    match type_name:
        case "int32":
            return to_signed(raw, 32), size
        case "int64":
            return to_signed(raw, 64), size
        case "uint32":
            return raw & 0xFFFFFFFF, size
        case "sint32" | "sint64":
            return zigzag(raw), size
        case "bool":
            return raw != 0, size
        case _:
            return raw & 0xFFFFFFFFFFFFFFFF, size


def _scalar_field(spec: FieldSpec, value: Scalar, ctx: DecodeContext) -> Field:
    display = None
    if spec.enum and isinstance(value, int):
        label = ctx.registry.enum_name(spec.enum, value)
        if label is not None:
            display = f"{value} ({label})"
    return Field(spec.name, value, number=spec.number, display=display)


def _decode_packed(raw: bytes, offset: int, spec: FieldSpec, ctx: DecodeContext) -> list[Field]:
    fields: list[Field] = []
    pos = 0
    while pos < len(raw):
        try:
            value, size = read_scalar(raw, pos, spec.type)
        except (TruncatedBody, MalformedBody) as exc:
            msg = f"packed field {spec.name!r} ends mid-element"
            raise MalformedBody(offset, msg) from exc
        fields.append(_scalar_field(spec, value, ctx))
        pos += size
    return fields


def _decode_length_delimited(raw: bytes, spec: FieldSpec, ctx: DecodeContext) -> Field:
    if spec.type == "string":
        return Field(spec.name, raw.decode("utf-8", errors="replace"), number=spec.number)

    if spec.type == "message" and ctx.can_nest:
        schema = ctx.registry.messages.get(spec.message or "")
        if schema is not None:
            nested = decode_message(raw, schema, ctx.deeper())
            return Field(spec.name, nested=nested, number=spec.number, display=schema.name)

    nested = None
    if spec.embedded and ctx.embed is not None and ctx.can_nest:
        nested = ctx.embed(spec.embedded, raw, ctx.deeper())
    return Field(spec.name, raw, nested=nested, number=spec.number)


def _decode_untyped(
    data: bytes,
    offset: int,
    name: str,
    number: int,
    wire_type: int,
    ctx: DecodeContext,
) -> tuple[Field, int]:
    if wire_type == WIRE_VARINT:
        value, size = read_varint(data, offset)
        return Field(name, value, number=number), size
    if wire_type == WIRE_FIXED64:
        value, size = read_u64(data, offset)
        return Field(name, value, number=number), size
    if wire_type == WIRE_FIXED32:
        value, size = read_u32(data, offset)
        return Field(name, value, number=number), size

    raw, size = read_length_delimited(data, offset)
    return _guess_length_delimited(raw, name, number, ctx), size


def _guess_length_delimited(raw: bytes, name: str, number: int, ctx: DecodeContext) -> Field:
    """Show schemaless bytes as text, a nested message, or raw bytes, in that order."""
    if raw:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            text = None
        if text is not None and text.isprintable():
            return Field(name, text, number=number)

        if ctx.can_nest:
            nested = decode_message(raw, None, ctx.deeper())
            if nested.truncation is None and nested.fields:
                return Field(name, nested=nested, number=number)

    return Field(name, raw, number=number)
