"""Project decoded records into explorer trees.

Every node's expansion hint is fixed here from its kind, its depth below the
root and its number of children, so viewers never need to look back into
the decoded data.
"""

from nethook_analyzer.config import COLLAPSE_REPEATED_OVER, EXPAND_DEPTH, HEX_PREVIEW_BYTES
from nethook_analyzer.core.decode.dispatch import decode_record
from nethook_analyzer.core.schema.registry import SchemaRegistry, default_registry
from nethook_analyzer.models.decoded import (
    DecodedBody,
    DecodedHeader,
    DecodedPacket,
    DecodedRecord,
    Field,
    FlatStruct,
    PacketStream,
    RepeatedField,
    Scalar,
    StructuredFields,
    Truncation,
)
from nethook_analyzer.models.record import RawRecord
from nethook_analyzer.models.tree import NodeKind, TreeNode

_LIST_KINDS = frozenset({NodeKind.REPEATED, NodeKind.PACKETS})


def expand_hint(kind: NodeKind, depth: int, child_count: int) -> bool:
    """Whether a node starts expanded.

    Leaves never expand. The root and the record's own header always do.
    Other groups, nested packet headers included, expand down to
    EXPAND_DEPTH, except repeated fields and packet lists too long to be
    useful at a glance.
    """
    if child_count == 0:
        return False
    if kind == NodeKind.ROOT or (kind == NodeKind.HEADER and depth == 1):
        return True
    if kind in _LIST_KINDS and child_count > COLLAPSE_REPEATED_OVER:
        return False
    return depth <= EXPAND_DEPTH


def format_bytes(data: bytes) -> str:
    """Length plus a hex preview of the first HEX_PREVIEW_BYTES bytes."""
    noun = "byte" if len(data) == 1 else "bytes"
    if not data:
        return f"0 {noun}"
    preview = data[:HEX_PREVIEW_BYTES].hex(" ")
    if len(data) > HEX_PREVIEW_BYTES:
        preview += " ..."
    return f"{len(data)} {noun}: {preview}"


def format_value(value: Scalar | None) -> str:
    if value is None:
        return "none"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, bytes):
        return format_bytes(value)
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


def _emsg_label(emsg: int | None, registry: SchemaRegistry) -> str:
    if emsg is None:
        return "unknown"
    name = registry.emsg_name(emsg)
    return f"{name} ({emsg})" if name else str(emsg)


def _node(
    label: str,
    kind: NodeKind,
    depth: int,
    children: tuple[TreeNode, ...] = (),
    *,
    value: str | None = None,
    data: bytes | None = None,
) -> TreeNode:
    return TreeNode(
        label=label,
        value=value,
        children=children,
        expand_by_default=expand_hint(kind, depth, len(children)),
        kind=kind,
        data=data,
    )


def _marker(truncation: Truncation, depth: int) -> TreeNode:
    return _node(
        "<truncated>",
        NodeKind.MARKER,
        depth,
        value=f"at offset {truncation.offset}: {truncation.reason}",
    )


class _Projector:
    def __init__(self, registry: SchemaRegistry) -> None:
        self.registry = registry

    def record(self, decoded: DecodedRecord) -> TreeNode:
        record = decoded.record
        header, body = self.packet_parts(decoded.packet, 1, record.type_discriminator)
        return _node(
            record.name,
            NodeKind.ROOT,
            0,
            (header, body),
            value=_emsg_label(decoded.message_type, self.registry),
        )

    def packet_parts(
        self, packet: DecodedPacket, depth: int, filename_emsg: int | None = None
    ) -> tuple[TreeNode, TreeNode]:
        if packet.header is None or packet.body is None:
            payload = _node(
                "Payload",
                NodeKind.BYTES,
                depth,
                value=format_bytes(packet.data),
                data=packet.data,
            )
            return self.failed_header(packet, depth, filename_emsg), payload
        return self.header(packet.header, depth, filename_emsg), self.body(packet.body, depth)

    def failed_header(
        self, packet: DecodedPacket, depth: int, filename_emsg: int | None
    ) -> TreeNode:
        emsg = _emsg_label(filename_emsg, self.registry)
        children = (
            _node("EMsg", NodeKind.FIELD, depth + 1, value=f"{emsg} (from filename)"),
            _node(
                "<truncated header>",
                NodeKind.MARKER,
                depth + 1,
                value=packet.header_error,
            ),
        )
        return _node("Header", NodeKind.HEADER, depth, children, value="unreadable")

    def header(
        self, header: DecodedHeader, depth: int, filename_emsg: int | None = None
    ) -> TreeNode:
        child_depth = depth + 1
        children = [
            _node(
                "EMsg",
                NodeKind.FIELD,
                child_depth,
                value=_emsg_label(header.message_type, self.registry),
            ),
        ]
        if filename_emsg is not None and filename_emsg != header.message_type:
            children.append(
                _node(
                    "EMsg (filename)",
                    NodeKind.FIELD,
                    child_depth,
                    value=_emsg_label(filename_emsg, self.registry),
                )
            )
        children.append(
            _node(
                "Layout",
                NodeKind.FIELD,
                child_depth,
                value=f"{header.kind} ({header.header_byte_length} bytes)",
            )
        )
        for job in header.correlation_ids:
            children.append(
                _node(job.name, NodeKind.FIELD, child_depth, value=format_value(job.value))
            )
        children.extend(self.field(f, child_depth) for f in header.fields)
        return _node("Header", NodeKind.HEADER, depth, tuple(children), value=str(header.kind))

    def body(self, body: DecodedBody, depth: int) -> TreeNode:
        if isinstance(body, StructuredFields):
            return _node(
                "Body",
                NodeKind.BODY,
                depth,
                self.fields(body.fields, body.truncation, depth + 1),
                value=body.schema_name or "unknown schema",
            )
        if isinstance(body, FlatStruct):
            fields = body.fields + ((body.trailer,) if body.trailer else ())
            return _node(
                "Body",
                NodeKind.BODY,
                depth,
                self.fields(fields, body.truncation, depth + 1),
                value=body.layout_name,
            )
        return _node(
            "Body",
            NodeKind.UNKNOWN,
            depth,
            value=f"no decoder, {format_bytes(body.data)}",
            data=body.data,
        )

    def fields(
        self,
        fields: tuple[Field | RepeatedField, ...],
        truncation: Truncation | None,
        depth: int,
    ) -> tuple[TreeNode, ...]:
        nodes = [self.field(f, depth) for f in fields]
        if truncation is not None:
            nodes.append(_marker(truncation, depth))
        return tuple(nodes)

    def field(
        self, field: Field | RepeatedField, depth: int, label: str | None = None
    ) -> TreeNode:
        label = label or field.name
        if isinstance(field, RepeatedField):
            children = tuple(
                self.field(element, depth + 1, f"[{i}]")
                for i, element in enumerate(field.elements)
            )
            noun = "item" if len(children) == 1 else "items"
            return _node(
                label, NodeKind.REPEATED, depth, children, value=f"{len(children)} {noun}"
            )

        if isinstance(field.nested, StructuredFields):
            nested = field.nested
            return _node(
                label,
                NodeKind.GROUP,
                depth,
                self.fields(nested.fields, nested.truncation, depth + 1),
                value=field.display or nested.schema_name,
            )
        if isinstance(field.nested, PacketStream):
            return self.stream(label, field.nested, depth)

        if isinstance(field.value, bytes):
            return _node(
                label, NodeKind.BYTES, depth, value=format_bytes(field.value), data=field.value
            )
        return _node(
            label, NodeKind.FIELD, depth, value=field.display or format_value(field.value)
        )

    def stream(self, label: str, stream: PacketStream, depth: int) -> TreeNode:
        children = []
        for i, packet in enumerate(stream.packets):
            if packet.header is None:
                name = "unreadable"
            else:
                emsg = packet.header.message_type
                name = self.registry.emsg_name(emsg) or str(emsg)
            parts = self.packet_parts(packet, depth + 2)
            children.append(
                _node(
                    f"[{i}] {name}",
                    NodeKind.PACKET,
                    depth + 1,
                    parts,
                    value=f"{packet.size} bytes",
                )
            )
        if stream.truncation is not None:
            children.append(_marker(stream.truncation, depth + 1))

        noun = "packet" if len(stream.packets) == 1 else "packets"
        value = f"{len(stream.packets)} {noun}"
        if stream.compressed:
            value += ", gzip"
        return _node(label, NodeKind.PACKETS, depth, tuple(children), value=value)


def project(decoded: DecodedRecord, *, registry: SchemaRegistry | None = None) -> TreeNode:
    """Build the explorer tree for a decoded record."""
    return _Projector(registry or default_registry()).record(decoded)


def get_tree(record: RawRecord, *, registry: SchemaRegistry | None = None) -> TreeNode:
    """Decode a record and project it; the same record always yields an equal tree."""
    registry = registry or default_registry()
    return project(decode_record(record, registry=registry), registry=registry)
