"""Display tree produced by projecting a decoded record."""

from dataclasses import dataclass
from enum import StrEnum


class NodeKind(StrEnum):
    ROOT = "root"
    HEADER = "header"
    BODY = "body"
    GROUP = "group"
    REPEATED = "repeated"
    PACKETS = "packets"
    PACKET = "packet"
    FIELD = "field"
    BYTES = "bytes"
    UNKNOWN = "unknown"
    MARKER = "marker"


@dataclass(frozen=True)
class TreeNode:
    """A single node in a record's explorer tree.

    ``expand_by_default`` is a hint for viewers, fixed at projection time.
    ``data`` carries the raw bytes of byte-blob and unknown-body nodes.
    """

    label: str
    value: str | None = None
    children: tuple["TreeNode", ...] = ()
    expand_by_default: bool = False
    kind: NodeKind = NodeKind.FIELD
    data: bytes | None = None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def child(self, label: str) -> "TreeNode | None":
        """Return the first direct child with the given label."""
        return next((c for c in self.children if c.label == label), None)

    def depth(self) -> int:
        """Number of levels in the subtree rooted here (a leaf has depth 1)."""
        return 1 + max((c.depth() for c in self.children), default=0)
