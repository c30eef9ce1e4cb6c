"""Schema registry: which decoder handles which EMsg.

The registry is loaded from versioned JSON documents rather than written
into the decoders. The packaged ``schemas/steam.json`` is the default; more
documents can be laid over it, each replacing entries by key.
"""

import functools
import json
import struct
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from loguru import logger

from nethook_analyzer.core.decode.wire import (
    WIRE_FIXED32,
    WIRE_FIXED64,
    WIRE_LENGTH_DELIMITED,
    WIRE_VARINT,
)
from nethook_analyzer.errors import SchemaError

VARINT_TYPES = frozenset({"int32", "int64", "uint32", "uint64", "sint32", "sint64", "bool"})
FIXED64_TYPES = frozenset({"fixed64", "sfixed64", "double"})
FIXED32_TYPES = frozenset({"fixed32", "sfixed32", "float"})
LENGTH_TYPES = frozenset({"string", "bytes", "message"})
FIELD_TYPES = VARINT_TYPES | FIXED64_TYPES | FIXED32_TYPES | LENGTH_TYPES

EMBEDDED_KINDS = frozenset({"packets"})
LAYOUT_FORMATS = frozenset("bBhHiIqQfd?")

BUILTIN_SCHEMA = Path(__file__).parent / "schemas" / "steam.json"


class Strategy(StrEnum):
    """How a message type's body is decoded."""

    PROTOBUF = "protobuf"
    LAYOUT = "layout"
    SERVICE = "service"
    NONE = "none"


@dataclass(frozen=True)
class FieldSpec:
    number: int
    name: str
    type: str
    repeated: bool = False
    message: str | None = None
    enum: str | None = None
    embedded: str | None = None

    @property
    def wire_type(self) -> int:
        if self.type in VARINT_TYPES:
            return WIRE_VARINT
        if self.type in FIXED64_TYPES:
            return WIRE_FIXED64
        if self.type in FIXED32_TYPES:
            return WIRE_FIXED32
        return WIRE_LENGTH_DELIMITED

    @property
    def packable(self) -> bool:
        return self.repeated and self.type not in LENGTH_TYPES


@dataclass(frozen=True)
class MessageSchema:
    name: str
    fields: tuple[FieldSpec, ...]
    _by_number: dict[int, FieldSpec] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self._by_number.update((f.number, f) for f in self.fields)

    def field_for(self, number: int) -> FieldSpec | None:
        return self._by_number.get(number)


@dataclass(frozen=True)
class LayoutField:
    name: str
    format: str
    enum: str | None = None


@dataclass(frozen=True)
class FlatLayout:
    name: str
    fields: tuple[LayoutField, ...]
    trailer: str | None = None

    @property
    def size(self) -> int:
        return struct.calcsize("<" + "".join(f.format for f in self.fields))


@dataclass(frozen=True)
class MessageEntry:
    """Registry entry for one EMsg. ``target`` names the schema, layout or service side."""

    emsg: int
    name: str
    strategy: Strategy
    target: str | None = None


@dataclass(frozen=True)
class ServiceMethod:
    name: str
    request: str | None = None
    response: str | None = None


class SchemaRegistry:
    """Lookup tables for message types, schemas, layouts, services and enums."""

    def __init__(
        self,
        *,
        version: int,
        emsgs: dict[int, MessageEntry],
        messages: dict[str, MessageSchema],
        layouts: dict[str, FlatLayout],
        services: dict[str, ServiceMethod],
        enums: dict[str, dict[int, str]],
        sources: tuple[str, ...] = (),
    ) -> None:
        self.version = version
        self.emsgs = emsgs
        self.messages = messages
        self.layouts = layouts
        self.services = services
        self.enums = enums
        self.sources = sources

    @classmethod
    def from_document(cls, doc: dict[str, Any], *, source: str = "<document>") -> "SchemaRegistry":
        """Build a registry from a parsed schema document (not yet validated)."""
        try:
            version = int(doc.get("version", 0))
            emsgs = {int(k): _parse_entry(int(k), v) for k, v in doc.get("emsgs", {}).items()}
            messages = {
                name: MessageSchema(name, tuple(_parse_field(f) for f in fields))
                for name, fields in doc.get("messages", {}).items()
            }
            layouts = {
                name: FlatLayout(
                    name,
                    tuple(LayoutField(*f) for f in spec["fields"]),
                    spec.get("trailer"),
                )
                for name, spec in doc.get("layouts", {}).items()
            }
            services = {
                name: ServiceMethod(name, spec.get("request"), spec.get("response"))
                for name, spec in doc.get("services", {}).items()
            }
            enums = {
                name: {int(k): str(v) for k, v in values.items()}
                for name, values in doc.get("enums", {}).items()
            }
        except (KeyError, TypeError, ValueError) as exc:
            msg = f"Invalid schema document {source}: {exc}"
            raise SchemaError(msg) from exc

        return cls(
            version=version,
            emsgs=emsgs,
            messages=messages,
            layouts=layouts,
            services=services,
            enums=enums,
            sources=(source,),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "SchemaRegistry":
        path = Path(path)
        try:
            doc = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            msg = f"Cannot read schema file {str(path)!r}: {exc}"
            raise SchemaError(msg) from exc
        if not isinstance(doc, dict):
            msg = f"Schema file {str(path)!r} must hold a JSON object"
            raise SchemaError(msg)
        return cls.from_document(doc, source=str(path))

    def overlay(self, other: "SchemaRegistry") -> "SchemaRegistry":
        """Return a new registry with ``other``'s entries replacing ours key by key."""
        return SchemaRegistry(
            version=max(self.version, other.version),
            emsgs={**self.emsgs, **other.emsgs},
            messages={**self.messages, **other.messages},
            layouts={**self.layouts, **other.layouts},
            services={**self.services, **other.services},
            enums={**self.enums, **other.enums},
            sources=self.sources + other.sources,
        )

    def validate(self) -> None:
        """Raise SchemaError if any entry refers to something undefined."""
        problems: list[str] = []

        for entry in self.emsgs.values():
            if entry.strategy is Strategy.PROTOBUF and entry.target not in self.messages:
                problems.append(f"EMsg {entry.emsg}: unknown message {entry.target!r}")
            if entry.strategy is Strategy.LAYOUT and entry.target not in self.layouts:
                problems.append(f"EMsg {entry.emsg}: unknown layout {entry.target!r}")
            if entry.strategy is Strategy.SERVICE and entry.target not in ("request", "response"):
                problems.append(f"EMsg {entry.emsg}: service side must be request or response")

        for schema in self.messages.values():
            for spec in schema.fields:
                where = f"{schema.name}.{spec.name}"
                if spec.type not in FIELD_TYPES:
                    problems.append(f"{where}: unknown type {spec.type!r}")
                if spec.type == "message" and spec.message not in self.messages:
                    problems.append(f"{where}: unknown message {spec.message!r}")
                if spec.enum is not None and spec.enum not in self.enums:
                    problems.append(f"{where}: unknown enum {spec.enum!r}")
                if spec.embedded is not None and spec.embedded not in EMBEDDED_KINDS:
                    problems.append(f"{where}: unknown embedded kind {spec.embedded!r}")

        for layout in self.layouts.values():
            for lf in layout.fields:
                if lf.format not in LAYOUT_FORMATS:
                    problems.append(f"{layout.name}.{lf.name}: bad format {lf.format!r}")
                if lf.enum is not None and lf.enum not in self.enums:
                    problems.append(f"{layout.name}.{lf.name}: unknown enum {lf.enum!r}")

        for method in self.services.values():
            for side in (method.request, method.response):
                if side is not None and side not in self.messages:
                    problems.append(f"service {method.name}: unknown message {side!r}")

        if problems:
            msg = "Schema registry is inconsistent:\n  " + "\n  ".join(problems)
            raise SchemaError(msg)

    def lookup(self, emsg: int) -> MessageEntry | None:
        return self.emsgs.get(emsg)

    def emsg_name(self, emsg: int | None) -> str | None:
        if emsg is None:
            return None
        entry = self.emsgs.get(emsg)
        return entry.name if entry else None

    def message(self, name: str) -> MessageSchema:
        return self.messages[name]

    def layout(self, name: str) -> FlatLayout:
        return self.layouts[name]

    def service(self, method: str) -> ServiceMethod | None:
        return self.services.get(method)

    def enum_name(self, enum: str | None, value: int) -> str | None:
        if enum is None:
            return None
        return self.enums.get(enum, {}).get(value)


def _parse_entry(emsg: int, spec: dict[str, Any]) -> MessageEntry:
    for strategy in (Strategy.PROTOBUF, Strategy.LAYOUT, Strategy.SERVICE):
        if strategy.value in spec:
            return MessageEntry(emsg, spec["name"], strategy, spec[strategy.value])
    return MessageEntry(emsg, spec["name"], Strategy.NONE)


def _parse_field(spec: dict[str, Any]) -> FieldSpec:
    return FieldSpec(
        number=int(spec["number"]),
        name=spec["name"],
        type=spec["type"],
        repeated=bool(spec.get("repeated", False)),
        message=spec.get("message"),
        enum=spec.get("enum"),
        embedded=spec.get("embedded"),
    )


@functools.cache
def default_registry() -> SchemaRegistry:
    """Return the packaged registry, loaded and validated once."""
    registry = SchemaRegistry.from_file(BUILTIN_SCHEMA)
    registry.validate()
    return registry


def load_registry(overlays: list[Path] | tuple[Path, ...] = ()) -> SchemaRegistry:
    """Return the packaged registry with the given schema files laid over it."""
    registry = default_registry()
    for path in overlays:
        registry = registry.overlay(SchemaRegistry.from_file(path))
        logger.debug("Loaded schema overlay {}", path)
    if overlays:
        registry.validate()
    return registry
