"""
Toolchain probe list — where to look for arm-none-eabi-gcc, in order.

The order is data, not control flow: ``default_probes()`` returns the
list and ``iter_bin_dirs()`` walks it, skipping directories already
seen.  The first probe whose directory holds a usable compiler wins.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from picobuild.core.models.host import HostProfile

# Conventional install locations (Homebrew on Apple silicon and Intel,
# distro packages, a system-wide official toolchain).
CONVENTIONAL_DIRS: tuple[str, ...] = (
    "/opt/homebrew/bin",
    "/usr/local/bin",
    "/usr/bin",
    "/opt/arm-gnu-toolchain/bin",
)

# The official macOS installer drops the toolchain into an application bundle:
#   /Applications/ArmGNUToolchain/<version>/arm-none-eabi/bin
APPLICATIONS_DIR = Path("/Applications")
BUNDLE_PATTERN = "ArmGNUToolchain/*/arm-none-eabi/bin"
BUNDLE_MAX_DEPTH = 4


@dataclass(frozen=True)
class ToolchainProbe:
    """One entry of the probe list.

    ``bin_dirs`` is called lazily so expensive probes (filesystem
    searches) only run when every earlier probe came up empty.
    """

    name: str
    bin_dirs: Callable[[], Iterable[Path]]
    os_families: tuple[str, ...] = field(default=("mac", "linux"))

    def applies_to(self, host: HostProfile) -> bool:
        return host.os_family in self.os_families


def search_bundle_dirs(
    root: Path,
    pattern: str = BUNDLE_PATTERN,
    max_depth: int = BUNDLE_MAX_DEPTH,
) -> list[Path]:
    """Find directories under ``root`` matching ``pattern``, at most ``max_depth`` deep.

    Versions sort newest-first by name.
    """
    if not root.is_dir():
        return []

    found: list[Path] = []
    root_depth = len(root.parts)
    for dirpath, dirnames, _files in os.walk(root):
        current = Path(dirpath)
        depth = len(current.parts) - root_depth
        if depth and current.match(pattern):
            found.append(current)
        if depth >= max_depth:
            dirnames[:] = []
        else:
            dirnames.sort(reverse=True)
    return found


def _path_dirs(inherited_path: str | None) -> list[Path]:
    raw = os.environ.get("PATH", "") if inherited_path is None else inherited_path
    return [Path(p) for p in raw.split(os.pathsep) if p]


def default_probes(
    install_dir: Path,
    *,
    inherited_path: str | None = None,
    conventional_dirs: Iterable[str] | None = None,
    applications_dir: Path | None = None,
) -> list[ToolchainProbe]:
    """Build the standard probe list.

    Order: configured install dir, the inherited PATH, conventional
    system locations, then (macOS only) the application bundle search.
    """
    conventional = CONVENTIONAL_DIRS if conventional_dirs is None else tuple(conventional_dirs)
    apps = APPLICATIONS_DIR if applications_dir is None else applications_dir
    return [
        ToolchainProbe("install-dir", lambda: [install_dir / "bin"]),
        ToolchainProbe("path", lambda: _path_dirs(inherited_path)),
        ToolchainProbe("system", lambda: [Path(d) for d in conventional]),
        ToolchainProbe("app-bundle", lambda: search_bundle_dirs(apps), os_families=("mac",)),
    ]


def iter_bin_dirs(probes: Iterable[ToolchainProbe], host: HostProfile) -> Iterator[tuple[str, Path]]:
    """Yield ``(probe name, bin dir)`` in priority order, each directory once."""
    seen: set[str] = set()
    for probe in probes:
        if not probe.applies_to(host):
            continue
        for bin_dir in probe.bin_dirs():
            key = os.path.abspath(bin_dir)
            if key in seen:
                continue
            seen.add(key)
            yield probe.name, bin_dir
