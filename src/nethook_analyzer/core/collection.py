"""An immutable, loaded dump directory."""

import threading
from collections import OrderedDict
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import overload

from nethook_analyzer.config import TREE_CACHE_SIZE
from nethook_analyzer.core.schema.registry import SchemaRegistry, default_registry
from nethook_analyzer.core.tree.projector import get_tree
from nethook_analyzer.models.record import RawRecord
from nethook_analyzer.models.tree import TreeNode


class DumpCollection(Sequence[RawRecord]):
    """Records of one dump directory in sequence order.

    The record list never changes after construction; reloading a directory
    means building a new collection and replacing the old one. Trees are
    decoded on first request and kept in a small LRU cache.
    """

    def __init__(
        self,
        directory: Path,
        records: Iterable[RawRecord],
        *,
        complete: bool = True,
        skipped: tuple[str, ...] = (),
        registry: SchemaRegistry | None = None,
        cache_size: int = TREE_CACHE_SIZE,
    ) -> None:
        self.directory = directory
        self.records = tuple(records)
        self.complete = complete
        self.skipped = skipped
        self.registry = registry or default_registry()
        self._cache_size = cache_size
        self._trees: OrderedDict[RawRecord, TreeNode] = OrderedDict()
        self._lock = threading.Lock()

    @overload
    def __getitem__(self, index: int) -> RawRecord: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[RawRecord, ...]: ...

    def __getitem__(self, index: int | slice) -> RawRecord | tuple[RawRecord, ...]:
        return self.records[index]

    def __len__(self) -> int:
        return len(self.records)

    def __repr__(self) -> str:
        state = "" if self.complete else ", incomplete"
        return f"DumpCollection({str(self.directory)!r}, {len(self)} records{state})"

    def find(self, sequence: int) -> RawRecord | None:
        """Return the first record with the given sequence number."""
        return next((r for r in self.records if r.sequence == sequence), None)

    def tree(self, record: RawRecord) -> TreeNode:
        """Return the record's explorer tree, decoding it on first use."""
        with self._lock:
            cached = self._trees.get(record)
            if cached is not None:
                self._trees.move_to_end(record)
                return cached

        node = get_tree(record, registry=self.registry)

        with self._lock:
            self._trees[record] = node
            self._trees.move_to_end(record)
            while len(self._trees) > self._cache_size:
                self._trees.popitem(last=False)
        return node
