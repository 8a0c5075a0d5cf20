"""
nosys.specs repair — fix a present-but-misconfigured toolchain offline.

Distro and Homebrew toolchains often ship nosys.specs somewhere the
compiler does not search.  Before anything is downloaded, look for the
file in a few well-known places and symlink it into
``<sysroot>/lib`` where the compiler will find it.  The file is only
ever linked, never written.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from picobuild.adapters.shell.command import CommandRunner
from picobuild.core.models.host import HostProfile
from picobuild.core.models.toolchain import SUPPORT_FILE, TARGET_TRIPLE, ResolvedToolchain
from picobuild.core.services.toolchain.locator import query_support_file, query_sysroot

logger = logging.getLogger(__name__)

HOMEBREW_FORMULA = "arm-none-eabi-gcc"
HOMEBREW_CELLAR = Path("/opt/homebrew/Cellar") / HOMEBREW_FORMULA
GENERIC_PREFIXES: tuple[Path, ...] = (Path("/usr"), Path("/opt"))


def find_in_tree(root: Path, name: str = SUPPORT_FILE, must_contain: str = TARGET_TRIPLE) -> Path | None:
    """First file called ``name`` under ``root`` whose path contains ``must_contain``.

    Directory entries are visited in sorted order, so the result is
    stable between runs.  Symlinked directories are not followed.
    """
    if not root.is_dir():
        return None
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        if name in filenames:
            candidate = Path(dirpath) / name
            if must_contain in str(candidate) and candidate.is_file():
                return candidate
    return None


class SpecRepair:
    """Locate a stray nosys.specs and link it into the compiler's sysroot."""

    def __init__(
        self,
        runner: CommandRunner,
        host: HostProfile,
        generic_prefixes: tuple[Path, ...] = GENERIC_PREFIXES,
    ) -> None:
        self.runner = runner
        self.host = host
        self.generic_prefixes = generic_prefixes

    def search_roots(self) -> list[Path]:
        """Secondary locations, in search order."""
        roots: list[Path] = []
        if self.runner.which("brew"):
            result = self.runner.run(["brew", "--prefix", HOMEBREW_FORMULA], timeout=30)
            if result.ok and result.output:
                roots.append(Path(result.output))
        if self.host.is_mac:
            roots.append(HOMEBREW_CELLAR)
        roots.extend(self.generic_prefixes)
        return roots

    def find_support_file(self) -> Path | None:
        for root in self.search_roots():
            found = find_in_tree(root)
            if found is not None:
                logger.info("Found %s at %s", SUPPORT_FILE, found)
                return found
        return None

    def repair(self, candidate: ResolvedToolchain) -> bool:
        """Try to make ``candidate`` resolve nosys.specs.

        Returns True only if the compiler itself reports the file
        after the link is in place.
        """
        compiler = candidate.compiler_path
        logger.info("%s not found via GCC search path; scanning common locations", SUPPORT_FILE)

        source = self.find_support_file()
        if source is None:
            logger.warning("No %s found for %s", SUPPORT_FILE, TARGET_TRIPLE)
            return False

        sysroot = query_sysroot(self.runner, compiler)
        if not sysroot:
            logger.warning("%s reports no sysroot; cannot link %s", compiler, SUPPORT_FILE)
            return False

        lib_dir = Path(sysroot) / "lib"
        link = lib_dir / SUPPORT_FILE
        try:
            lib_dir.mkdir(parents=True, exist_ok=True)
            if link.is_symlink():
                link.unlink()
            if link.exists():
                logger.warning("%s exists and is not a link; leaving it alone", link)
            else:
                link.symlink_to(source)
                logger.info("Linked %s: %s -> %s", SUPPORT_FILE, source, link)
        except OSError as e:
            logger.warning("Cannot link %s into %s: %s", SUPPORT_FILE, lib_dir, e)
            return False

        resolved = query_support_file(self.runner, compiler)
        if resolved is None:
            logger.warning("%s still cannot resolve %s after linking", compiler, SUPPORT_FILE)
            return False
        return True
