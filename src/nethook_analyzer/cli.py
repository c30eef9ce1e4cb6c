"""CLI for inspecting NetHook dumps (list, show, MCP server)."""

import json
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from nethook_analyzer.config import resolve_latest_dump_directory
from nethook_analyzer.core.collection import DumpCollection
from nethook_analyzer.core.importer.loader import load_dump
from nethook_analyzer.core.schema.registry import SchemaRegistry, load_registry
from nethook_analyzer.core.search.filters import DIRECTIONS, filter_records
from nethook_analyzer.core.tree.render import render_tree, tree_to_dict
from nethook_analyzer.errors import DirectoryUnreadable, SchemaError
from nethook_analyzer.logging_config import configure_logging

app = typer.Typer(help="NetHook analyzer: browse Steam network message dumps.")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    schema: Annotated[
        list[Path] | None,
        typer.Option("--schema", "-s", help="Extra schema file laid over the built-in one"),
    ] = None,
) -> None:
    configure_logging(verbose=verbose)
    try:
        ctx.obj = load_registry(tuple(schema or ()))
    except SchemaError as exc:
        logger.error("{}", exc)
        raise typer.Exit(1) from exc


def _load(directory: Path | None, registry: SchemaRegistry) -> DumpCollection:
    """Load a dump directory, defaulting to the newest NetHook session."""
    target = directory or resolve_latest_dump_directory()
    if target is None:
        logger.error("No dump directory given and no Steam nethook directory found.")
        raise typer.Exit(1)
    try:
        return load_dump(target, registry=registry)
    except DirectoryUnreadable as exc:
        logger.error("{}", exc)
        raise typer.Exit(1) from exc


@app.command(name="list")
def list_cmd(
    ctx: typer.Context,
    directory: Path | None = typer.Argument(None, help="Dump session directory"),
    search: Annotated[
        str | None,
        typer.Option("--search", "-q", help="Filter by file or message name"),
    ] = None,
    direction: str = typer.Option("both", "--direction", "-d", help="in, out or both"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List the messages of a dump in capture order."""
    if direction not in DIRECTIONS:
        logger.error(
            "Unknown direction '{}', expected one of {}", direction, ", ".join(DIRECTIONS)
        )
        raise typer.Exit(1)

    collection = _load(directory, ctx.obj)
    records = filter_records(collection, query=search, direction=direction)

    if output_json:
        data = {
            "directory": str(collection.directory),
            "complete": collection.complete,
            "records": [
                {
                    "sequence": r.sequence,
                    "direction": str(r.direction),
                    "emsg": r.type_discriminator,
                    "type": r.display_type,
                    "file": r.name,
                    "size": len(r.payload),
                }
                for r in records
            ],
        }
        typer.echo(json.dumps(data, indent=2))
        return

    for r in records:
        arrow = "<-" if r.direction == "in" else "->"
        emsg = "?" if r.type_discriminator is None else r.type_discriminator
        size = len(r.payload)
        typer.echo(f"{r.sequence:>6} {arrow} {emsg:>5}  {r.display_type}  ({size} bytes)")
    typer.echo(f"\n{len(records)} of {len(collection)} records in {collection.directory}")


@app.command()
def show(
    ctx: typer.Context,
    directory: Path = typer.Argument(..., help="Dump session directory"),
    sequence: int = typer.Argument(..., help="Sequence number of the message"),
    max_depth: Annotated[
        int | None,
        typer.Option("--max-depth", "-m", help="Max tree depth to show"),
    ] = None,
    expand_all: bool = typer.Option(False, "--all", "-a", help="Expand every group"),
    show_data: bool = typer.Option(False, "--hex", "-x", help="Hex dump byte fields"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the decoded header and body of one message."""
    collection = _load(directory, ctx.obj)
    record = collection.find(sequence)
    if record is None:
        typer.echo(f"No message with sequence {sequence} in {directory}.")
        raise typer.Exit(1)

    tree = collection.tree(record)
    if output_json:
        typer.echo(json.dumps(tree_to_dict(tree, max_depth=max_depth), indent=2))
    else:
        text = render_tree(
            tree, max_depth=max_depth, expand_all=expand_all, show_data=show_data
        )
        typer.echo(text, nl=False)


@app.command()
def latest() -> None:
    """Print the newest dump session directory."""
    directory = resolve_latest_dump_directory()
    if directory is None:
        logger.error("No Steam nethook directory found.")
        raise typer.Exit(1)
    typer.echo(str(directory))


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from nethook_analyzer.mcp.server import run_mcp_server

    run_mcp_server()
