"""Load a NetHook dump directory into a DumpCollection."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from loguru import logger

from nethook_analyzer.config import LOAD_WORKERS
from nethook_analyzer.core.collection import DumpCollection
from nethook_analyzer.core.importer.filename import DumpFilename, split_dump_filename
from nethook_analyzer.core.schema.registry import SchemaRegistry, default_registry
from nethook_analyzer.errors import DirectoryUnreadable
from nethook_analyzer.models.record import RawRecord


def _list_directory(directory: Path) -> list[Path]:
    try:
        return sorted(directory.iterdir())
    except OSError as exc:
        msg = f"Cannot read dump directory {str(directory)!r}: {exc}"
        raise DirectoryUnreadable(msg) from exc


def _read_record(path: Path, parsed: DumpFilename, registry: SchemaRegistry) -> RawRecord | None:
    try:
        payload = path.read_bytes()
    except OSError as exc:
        logger.warning("Skipping {}: {}", path.name, exc)
        return None
    return RawRecord(
        path=path,
        sequence=parsed.sequence,
        direction=parsed.direction,
        type_discriminator=parsed.type_discriminator,
        type_name_fragment=parsed.type_name_fragment,
        inner_type_name=registry.emsg_name(parsed.type_discriminator),
        payload=payload,
    )


def load_dump(
    directory: str | Path,
    *,
    registry: SchemaRegistry | None = None,
    workers: int = LOAD_WORKERS,
    timeout: float | None = None,
    cancel: threading.Event | None = None,
) -> DumpCollection:
    """Read every dump file in ``directory``.

    Files are read in parallel; records come back sorted by their numeric
    sequence whatever order the reads finish in. Files whose names are not
    dump names are skipped; a malformed type in a dump name only loses the
    type metadata.

    Args:
        directory: The dump session directory.
        registry: Schema registry used to name message types.
        workers: Number of reader threads.
        timeout: Seconds after which remaining files are abandoned.
        cancel: Event that abandons remaining files when set.

    Returns:
        A DumpCollection; ``complete`` is False if the load was cut short.

    Raises:
        DirectoryUnreadable: The directory cannot be listed.
    """
    directory = Path(directory)
    registry = registry or default_registry()

    candidates: list[tuple[Path, DumpFilename]] = []
    skipped: list[str] = []
    for path in _list_directory(directory):
        if not path.is_file():
            continue
        parsed = split_dump_filename(path.name)
        if parsed is None:
            logger.debug("Skipping {}: not a dump file", path.name)
            skipped.append(path.name)
            continue
        if parsed.error:
            logger.warning("Malformed dump file name {}: {}", path.name, parsed.error)
        candidates.append((path, parsed))

    records: list[RawRecord] = []
    complete = True
    started = time.monotonic()
    pool = ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="nethook-load")
    try:
        futures = [pool.submit(_read_record, path, parsed, registry) for path, parsed in candidates]
        try:
            for future in as_completed(futures, timeout=timeout):
                if cancel is not None and cancel.is_set():
                    complete = False
                    break
                record = future.result()
                if record is not None:
                    records.append(record)
        except TimeoutError:
            complete = False
    finally:
        pool.shutdown(wait=complete, cancel_futures=True)

    records.sort(key=lambda r: (r.sequence, r.name))

    if not complete:
        logger.warning(
            "Load of {} abandoned after {:.1f}s: {} of {} files read",
            directory, time.monotonic() - started, len(records), len(candidates),
        )
    logger.info(
        "Loaded {} records from {} ({} other files skipped)",
        len(records), directory, len(skipped),
    )
    return DumpCollection(
        directory,
        records,
        complete=complete,
        skipped=tuple(skipped),
        registry=registry,
    )


def list_records(
    directory: str | Path, *, registry: SchemaRegistry | None = None
) -> tuple[RawRecord, ...]:
    """Return the directory's dump records in sequence order."""
    return load_dump(directory, registry=registry).records
