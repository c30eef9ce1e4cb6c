"""Parse NetHook dump file names.

Names look like ``<sequence>_<in|out>_<emsg>[_<fragment>][.bin]``, for
example ``017_in_766_k_EMsgClientPersonaState.bin``.
"""

import re
from dataclasses import dataclass

from nethook_analyzer.errors import MalformedFilename
from nethook_analyzer.models.record import Direction

_DUMP_PREFIX = re.compile(r"^(?P<sequence>\d+)_(?P<direction>in|out)_(?P<rest>.*)$")
_TYPE = re.compile(r"^(?P<emsg>\d+)(?:_(?P<fragment>.+))?$")

_FRAGMENT_PREFIX = "k_EMsg"
_MAX_EMSG = 0x7FFFFFFF


@dataclass(frozen=True)
class DumpFilename:
    """Metadata carried by a dump file name.

    ``error`` is set when the name has the dump prefix but its type part
    could not be parsed; the type fields are then None.
    """

    sequence: int
    direction: Direction
    type_discriminator: int | None
    type_name_fragment: str | None = None
    error: str | None = None


def parse_type_part(rest: str) -> tuple[int, str | None]:
    """Parse ``<emsg>[_<fragment>]``.

    Raises:
        MalformedFilename: The EMsg is missing, not a number, or out of range.
    """
    match = _TYPE.match(rest)
    if match is None:
        msg = f"expected <emsg>[_<name>], got {rest!r}"
        raise MalformedFilename(msg)

    emsg = int(match["emsg"])
    if emsg > _MAX_EMSG:
        msg = f"EMsg {emsg} out of range"
        raise MalformedFilename(msg)

    fragment = match["fragment"]
    if fragment is not None:
        fragment = fragment.removeprefix(_FRAGMENT_PREFIX) or None
    return emsg, fragment


def split_dump_filename(name: str) -> DumpFilename | None:
    """Return the name's metadata, or None if it is not a dump file name."""
    stem = name.removesuffix(".bin")
    match = _DUMP_PREFIX.match(stem)
    if match is None:
        return None

    sequence = int(match["sequence"])
    direction = Direction(match["direction"])
    try:
        emsg, fragment = parse_type_part(match["rest"])
    except MalformedFilename as exc:
        return DumpFilename(sequence, direction, None, error=str(exc))
    return DumpFilename(sequence, direction, emsg, fragment)
