"""Browse and decode Steam NetHook2 network message dumps."""

from nethook_analyzer.core.collection import DumpCollection
from nethook_analyzer.core.decode.dispatch import decode_record
from nethook_analyzer.core.importer.loader import list_records, load_dump
from nethook_analyzer.core.search.filters import filter_records
from nethook_analyzer.core.tree.projector import get_tree
from nethook_analyzer.core.tree.render import render_tree, tree_to_dict
from nethook_analyzer.models.record import Direction, RawRecord
from nethook_analyzer.models.tree import TreeNode

__all__ = [
    "Direction",
    "DumpCollection",
    "RawRecord",
    "TreeNode",
    "decode_record",
    "filter_records",
    "get_tree",
    "list_records",
    "load_dump",
    "render_tree",
    "tree_to_dict",
]
