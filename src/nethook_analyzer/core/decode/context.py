"""State threaded through a single recursive decode."""

from dataclasses import dataclass, field, replace

from nethook_analyzer.config import MAX_INFLATED_SIZE, MAX_NESTING_DEPTH
from nethook_analyzer.core.schema.registry import SchemaRegistry, default_registry
from nethook_analyzer.protocols import EmbedDecoder


@dataclass
class InflateBudget:
    """Bytes of gzip output one record may still produce, across all nested streams."""

    remaining: int = field(default_factory=lambda: MAX_INFLATED_SIZE)

    def spend(self, size: int) -> None:
        self.remaining -= size


@dataclass(frozen=True)
class DecodeContext:
    registry: SchemaRegistry = field(default_factory=default_registry)
    depth: int = 0
    embed: EmbedDecoder | None = None
    max_depth: int = MAX_NESTING_DEPTH
    # Shared, not copied, by deeper().
    inflate_budget: InflateBudget = field(default_factory=InflateBudget, compare=False)

    def deeper(self) -> "DecodeContext":
        return replace(self, depth=self.depth + 1)

    @property
    def can_nest(self) -> bool:
        """Whether another level of nested decoding is allowed."""
        return self.depth < self.max_depth
