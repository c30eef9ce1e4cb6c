"""Protocols for the pluggable pieces of the decoder."""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from nethook_analyzer.models.decoded import DecodedBody, DecodedHeader, Nested

if TYPE_CHECKING:
    from nethook_analyzer.core.decode.context import DecodeContext
    from nethook_analyzer.core.schema.registry import MessageEntry


@runtime_checkable
class BodyStrategy(Protocol):
    """Decodes a body for one kind of registry entry."""

    def __call__(
        self,
        entry: "MessageEntry",
        data: bytes,
        header: DecodedHeader | None,
        ctx: "DecodeContext",
    ) -> DecodedBody:
        """Decode ``data`` according to ``entry``."""
        ...


@runtime_checkable
class EmbedDecoder(Protocol):
    """Decodes bytes held by a field that carries another format inside it."""

    def __call__(self, kind: str, data: bytes, ctx: "DecodeContext") -> Nested | None:
        """Return the nested decode, or None when ``kind`` is not handled."""
        ...
