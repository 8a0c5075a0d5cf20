"""
CMake cache reader — ``CMakeCache.txt`` is CMake's configuration marker.

picobuild never writes these files; it reads them to decide whether a
previous configure step used different inputs, and deletes individual
stale ones.  Entry lines look like ``KEY:TYPE=VALUE``; ``//`` and ``#``
lines are comments.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

CACHE_FILE = "CMakeCache.txt"

# Nested sub-builds (pioasm, picotool, ExternalProject trees) sit a few
# levels below the top-level build directory.
NESTED_MAX_DEPTH = 3


def parse_cache(text: str) -> dict[str, str]:
    """Parse CMakeCache text into ``{KEY: VALUE}`` (types dropped)."""
    entries: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith(("//", "#")) or "=" not in line:
            continue
        lhs, value = line.split("=", 1)
        key = lhs.split(":", 1)[0].strip()
        if key:
            entries[key] = value.strip()
    return entries


def read_cache(path: Path) -> dict[str, str] | None:
    """Entries of the cache at ``path``, or None if it is missing or unreadable."""
    if not path.is_file():
        return None
    try:
        return parse_cache(path.read_text(encoding="utf-8", errors="replace"))
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
        return None


def nested_caches(build_dir: Path, max_depth: int = NESTED_MAX_DEPTH) -> list[Path]:
    """Cache files of sub-builds below ``build_dir`` (excluding its own)."""
    found: list[Path] = []
    base_depth = len(build_dir.parts)
    for dirpath, dirnames, filenames in os.walk(build_dir):
        current = Path(dirpath)
        depth = len(current.parts) - base_depth
        if depth and CACHE_FILE in filenames:
            found.append(current / CACHE_FILE)
        if depth >= max_depth:
            dirnames[:] = []
        else:
            dirnames.sort()
    return found
