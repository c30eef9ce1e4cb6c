"""Configuration constants for nethook-analyzer."""

import os
from pathlib import Path

# Steam install directories. First one containing a "nethook" directory is used.
STEAM_DIRECTORIES: list[Path] = [
    *([Path(os.environ["STEAM_DIR"]).expanduser()] if os.environ.get("STEAM_DIR") else []),
    Path("~/.steam/steam").expanduser(),
    Path("~/.local/share/Steam").expanduser(),
    Path("~/Library/Application Support/Steam").expanduser(),
    Path("C:/Program Files (x86)/Steam"),
]

# Threads used to read dump files during a directory load.
LOAD_WORKERS: int = 8

# Nested decodes deeper than this keep the field as raw bytes.
MAX_NESTING_DEPTH: int = 32

# Total gzip output one record may inflate, summed over nested multi messages.
MAX_INFLATED_SIZE: int = 64 * 1024 * 1024

# Groups this many levels below the root or fewer start expanded (root is depth 0).
EXPAND_DEPTH: int = 2

# Repeated groups with more elements than this start collapsed.
COLLAPSE_REPEATED_OVER: int = 16

# Bytes shown inline for a byte blob before it is elided.
HEX_PREVIEW_BYTES: int = 32

# Decoded trees kept per loaded collection.
TREE_CACHE_SIZE: int = 256


def resolve_nethook_directory() -> Path | None:
    """Return the first existing ``<steam>/nethook`` directory, if any."""
    for candidate in STEAM_DIRECTORIES:
        nethook = candidate / "nethook"
        if nethook.is_dir():
            return nethook
    return None


def resolve_latest_dump_directory() -> Path | None:
    """Return the most recent dump session directory under the nethook directory.

    NetHook2 names session directories after their start time, so the
    lexically last directory is the newest one. Falls back to the nethook
    directory itself when it holds no sessions.
    """
    nethook = resolve_nethook_directory()
    if nethook is None:
        return None
    sessions = sorted(p for p in nethook.iterdir() if p.is_dir())
    return sessions[-1] if sessions else nethook
