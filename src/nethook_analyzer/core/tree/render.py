"""Render explorer trees as indented text or plain dicts."""

import io
from typing import Any

from nethook_analyzer.models.tree import TreeNode

_HEX_ROW = 16


def hex_dump(data: bytes, indent: str = "") -> str:
    """Classic offset / hex / ASCII dump, one 16-byte row per line."""
    out = io.StringIO()
    for offset in range(0, len(data), _HEX_ROW):
        row = data[offset : offset + _HEX_ROW]
        text = "".join(chr(b) if 0x20 <= b < 0x7F else "." for b in row)
        out.write(f"{indent}{offset:08x}  {row.hex(' '):<{_HEX_ROW * 3 - 1}}  |{text}|\n")
    return out.getvalue()


def render_tree(
    node: TreeNode,
    *,
    max_depth: int | None = None,
    expand_all: bool = False,
    show_data: bool = False,
) -> str:
    """Render a tree as indented text.

    Args:
        node: The root node to render.
        max_depth: Max levels below ``node`` to include (None = unlimited).
        expand_all: Ignore the nodes' expansion hints.
        show_data: Print a hex dump under each node carrying raw bytes.

    Returns:
        The rendered tree. Groups that are collapsed, or cut off by
        ``max_depth``, end with a ``... (N children)`` line.
    """
    out = io.StringIO()
    _render(out, node, 0, max_depth, expand_all, show_data)
    return out.getvalue()


def _render(
    out: io.StringIO,
    node: TreeNode,
    depth: int,
    max_depth: int | None,
    expand_all: bool,
    show_data: bool,
) -> None:
    indent = "    " * depth
    line = f"{indent}- {node.label}"
    if node.value is not None:
        line += f": {node.value}"
    out.write(line + "\n")

    if show_data and node.data:
        out.write(hex_dump(node.data, indent + "      "))

    if node.is_leaf:
        return

    expanded = expand_all or node.expand_by_default
    if not expanded or (max_depth is not None and depth >= max_depth):
        count = len(node.children)
        noun = "child" if count == 1 else "children"
        out.write(f"{indent}    ... ({count} {noun})\n")
        return

    for child in node.children:
        _render(out, child, depth + 1, max_depth, expand_all, show_data)


def tree_to_dict(node: TreeNode, *, max_depth: int | None = None) -> dict[str, Any]:
    """Convert a tree to JSON-ready dicts; raw bytes are given as hex strings."""
    result: dict[str, Any] = {
        "label": node.label,
        "kind": str(node.kind),
        "value": node.value,
        "expand_by_default": node.expand_by_default,
    }
    if node.data is not None:
        result["data"] = node.data.hex()
    if max_depth is not None and max_depth <= 0:
        result["child_count"] = len(node.children)
        return result

    next_depth = None if max_depth is None else max_depth - 1
    result["children"] = [tree_to_dict(c, max_depth=next_depth) for c in node.children]
    return result
