"""Filter record listings by name and direction."""

from collections.abc import Iterable

from nethook_analyzer.models.record import Direction, RawRecord

DIRECTIONS = ("in", "out", "both")


def matches(record: RawRecord, query: str | None = None, direction: str = "both") -> bool:
    """Case-insensitive substring match on the file name or inner type name.

    Raises:
        ValueError: ``direction`` is not one of "in", "out" or "both".
    """
    if direction not in DIRECTIONS:
        msg = f"direction must be one of {', '.join(DIRECTIONS)}, got {direction!r}"
        raise ValueError(msg)

    if direction != "both" and record.direction != Direction(direction):
        return False
    if not query:
        return True

    needle = query.casefold()
    haystacks = (record.name, record.inner_type_name or "")
    return any(needle in h.casefold() for h in haystacks)


def filter_records(
    records: Iterable[RawRecord], *, query: str | None = None, direction: str = "both"
) -> list[RawRecord]:
    """Return the records that match, keeping their order."""
    return [r for r in records if matches(r, query, direction)]
