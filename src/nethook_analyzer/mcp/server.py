"""MCP server exposing NetHook dump listing and tree inspection tools."""

import asyncio
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from nethook_analyzer.config import resolve_latest_dump_directory
from nethook_analyzer.core.collection import DumpCollection
from nethook_analyzer.core.importer.loader import load_dump
from nethook_analyzer.core.schema.registry import SchemaRegistry, load_registry
from nethook_analyzer.core.search.filters import DIRECTIONS, filter_records
from nethook_analyzer.core.tree.render import render_tree, tree_to_dict
from nethook_analyzer.errors import DirectoryUnreadable

# --- Core functions (testable without MCP context) ---


def nethook_list_records(
    collection: DumpCollection,
    *,
    query: str | None = None,
    direction: str = "both",
    limit: int = 100,
    offset: int = 0,
) -> dict[str, Any]:
    """List the records of a loaded dump in sequence order.

    Args:
        query: Case-insensitive substring of the file name or message name.
        direction: "in", "out" or "both".
        limit: Max results (1-500, default 100).
        offset: Pagination offset.
    """
    if direction not in DIRECTIONS:
        return {"error": f"Unknown direction '{direction}'.", "records": [], "count": 0}

    limit = max(1, min(limit, 500))
    matched = filter_records(collection, query=query, direction=direction)
    page = matched[offset : offset + limit]

    output: dict[str, Any] = {
        "directory": str(collection.directory),
        "records": [
            {
                "sequence": r.sequence,
                "direction": str(r.direction),
                "emsg": r.type_discriminator,
                "type": r.display_type,
                "file": r.name,
                "size": len(r.payload),
            }
            for r in page
        ],
        "count": len(page),
        "total": len(matched),
        "complete": collection.complete,
        "has_more": offset + len(page) < len(matched),
    }
    if output["has_more"]:
        output["next_offset"] = offset + limit
    return output


def nethook_get_tree(
    collection: DumpCollection,
    *,
    sequence: int,
    max_depth: int | None = None,
    output_format: str = "text",
    expand_all: bool = False,
) -> dict[str, Any]:
    """Decode one record and return its explorer tree.

    Args:
        sequence: Sequence number of the record.
        max_depth: Max depth levels (None = unlimited).
        output_format: "text" (indented) or "json" (structured).
        expand_all: Ignore the default expansion hints (text output only).
    """
    record = collection.find(sequence)
    if record is None:
        return {"error": f"No record with sequence {sequence}."}

    tree = collection.tree(record)
    result: dict[str, Any] = {"sequence": record.sequence, "file": record.name}
    if output_format == "json":
        result["tree"] = tree_to_dict(tree, max_depth=max_depth)
    else:
        result["tree"] = render_tree(tree, max_depth=max_depth, expand_all=expand_all)
    return result


# --- Server state ---


@dataclass
class ServerContext:
    """The currently loaded dump, replaced when another directory is requested."""

    registry: SchemaRegistry
    default_directory: Path | None
    collection: DumpCollection | None = None
    load_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def collection_for(self, directory: str | None) -> DumpCollection:
        """Return the collection for ``directory``, loading it if it is not the current one.

        Without a directory the current collection is reused, or the default
        directory is loaded when nothing is loaded yet.

        Raises:
            DirectoryUnreadable: No directory was given and none could be found,
                or the directory cannot be listed.
        """
        if directory:
            path: Path | None = Path(directory).expanduser()
        elif self.collection is not None:
            return self.collection
        else:
            path = self.default_directory
        if path is None:
            msg = "No dump directory given and no NetHook directory found"
            raise DirectoryUnreadable(msg)

        async with self.load_lock:
            current = self.collection
            if current is None or current.directory != path:
                current = await asyncio.to_thread(load_dump, path, registry=self.registry)
                self.collection = current
            return current


def _resolve_settings() -> tuple[Path | None, list[Path]]:
    dump_dir_env = os.environ.get("NETHOOK_DUMP_DIR")
    dump_dir = Path(dump_dir_env) if dump_dir_env else resolve_latest_dump_directory()
    schema_env = os.environ.get("NETHOOK_SCHEMA", "")
    overlays = [Path(p) for p in schema_env.split(os.pathsep) if p]
    return dump_dir, overlays


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Load the schema registry on startup; dumps are loaded on first use."""
    dump_dir, overlays = _resolve_settings()
    registry = load_registry(overlays)
    if dump_dir is not None:
        logger.info("Default dump directory: {}", dump_dir)
    yield ServerContext(registry=registry, default_directory=dump_dir)


mcp_server = FastMCP(
    "nethook-analyzer",
    instructions="""\
NetHook dumps hold one file per Steam network message, numbered in capture order.

1. Call nethook_list_records_tool to see the messages of a dump (newest session
   by default). Filter by message name with `query` and by `direction`.
2. Call nethook_get_tree_tool with a record's sequence number to see its
   decoded header and body.

Multi messages contain several packets; their trees can be large, so use
max_depth to get an overview first.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def nethook_list_records_tool(
    ctx: Context,
    directory: str | None = None,
    query: str | None = None,
    direction: str = "both",
    limit: int = 100,
    offset: int = 0,
) -> dict[str, Any]:
    """List the messages in a NetHook dump directory.

    Pagination: When has_more is true, use next_offset in a follow-up call.

    Args:
        directory: Dump session directory (default: the one loaded last, else
            the newest session).
        query: Case-insensitive substring of the file or message name.
        direction: "in", "out" or "both".
        limit: Max results (1-500, default 100).
        offset: Pagination offset.
    """
    try:
        collection = await _ctx(ctx).collection_for(directory)
    except DirectoryUnreadable as exc:
        return {"error": str(exc), "records": [], "count": 0}
    return nethook_list_records(
        collection, query=query, direction=direction, limit=limit, offset=offset
    )


@mcp_server.tool()
async def nethook_get_tree_tool(
    ctx: Context,
    sequence: int,
    directory: str | None = None,
    max_depth: int | None = None,
    output_format: str = "text",
    expand_all: bool = False,
) -> dict[str, Any]:
    """Decode a message and return its header and body as a tree.

    Args:
        sequence: Sequence number from nethook_list_records_tool.
        directory: Dump session directory (default: the last one listed).
        max_depth: Max depth levels (None = unlimited).
        output_format: "text" (indented) or "json" (structured).
        expand_all: Show groups that start collapsed (text output only).
    """
    try:
        collection = await _ctx(ctx).collection_for(directory)
    except DirectoryUnreadable as exc:
        return {"error": str(exc)}
    # Gzip multi messages can take a while to inflate.
    return await asyncio.to_thread(
        nethook_get_tree,
        collection,
        sequence=sequence,
        max_depth=max_depth,
        output_format=output_format,
        expand_all=expand_all,
    )


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from nethook_analyzer.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")
