"""
Toolchain locator — find a cross-compiler that can actually link.

A compiler is *usable* when its binary is executable AND
``arm-none-eabi-gcc -print-file-name=nosys.specs`` names a file that
exists.  GCC echoes the bare name back when it cannot find the file,
so the answer must be an absolute path to a real file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from picobuild.adapters.shell.command import CommandRunner
from picobuild.core.models.host import HostProfile
from picobuild.core.models.toolchain import COMPILER_NAME, SUPPORT_FILE, ResolvedToolchain
from picobuild.core.services.toolchain.probes import ToolchainProbe, iter_bin_dirs

logger = logging.getLogger(__name__)

_QUERY_TIMEOUT = 30


def is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def _query_env(bin_dir: Path) -> dict[str, str]:
    """PATH for one compiler query, with the candidate's bin dir in front."""
    return {"PATH": os.pathsep.join(p for p in (str(bin_dir), os.environ.get("PATH", "")) if p)}


def query_support_file(runner: CommandRunner, compiler: Path) -> Path | None:
    """Ask the compiler where nosys.specs lives; None unless that file exists."""
    result = runner.run(
        [str(compiler), f"-print-file-name={SUPPORT_FILE}"],
        env_overrides=_query_env(compiler.parent),
        timeout=_QUERY_TIMEOUT,
    )
    if not result.ok or not result.output:
        return None
    reported = Path(result.output.splitlines()[-1].strip())
    if reported.is_absolute() and reported.is_file():
        return reported
    return None


def query_sysroot(runner: CommandRunner, compiler: Path) -> str:
    """The compiler's ``-print-sysroot`` answer ('' when it reports none)."""
    result = runner.run(
        [str(compiler), "-print-sysroot"],
        env_overrides=_query_env(compiler.parent),
        timeout=_QUERY_TIMEOUT,
    )
    return result.output if result.ok else ""


class ToolchainLocator:
    """Walk the probe list and accept the first usable compiler.

    After ``locate()``, ``last_unusable`` holds the first compiler that
    was present but could not resolve nosys.specs (or None), and
    ``attempts`` records what every probed directory looked like.
    """

    def __init__(self, runner: CommandRunner, probes: list[ToolchainProbe], host: HostProfile) -> None:
        self.runner = runner
        self.probes = probes
        self.host = host
        self.last_unusable: ResolvedToolchain | None = None
        self.attempts: list[dict] = []

    def check(self, bin_dir: Path, source: str = "") -> ResolvedToolchain | None:
        """Verify a single bin directory; the usable toolchain or None."""
        compiler = bin_dir / COMPILER_NAME
        if not is_executable(compiler):
            return None
        spec = query_support_file(self.runner, compiler)
        if spec is None:
            return None
        return ResolvedToolchain(bin_dir=bin_dir, compiler_path=compiler, support_file=spec, source=source)

    def locate(self) -> ResolvedToolchain | None:
        self.last_unusable = None
        self.attempts = []

        for source, bin_dir in iter_bin_dirs(self.probes, self.host):
            compiler = bin_dir / COMPILER_NAME
            if not is_executable(compiler):
                continue

            found = self.check(bin_dir, source)
            if found is not None:
                self.attempts.append({"source": source, "bin_dir": str(bin_dir), "status": "usable"})
                logger.info("Using %s (%s), nosys.specs at %s", compiler, source, found.support_file)
                return found

            self.attempts.append({"source": source, "bin_dir": str(bin_dir), "status": "no-specs"})
            logger.info("%s cannot resolve %s; trying next location", compiler, SUPPORT_FILE)
            if self.last_unusable is None:
                self.last_unusable = ResolvedToolchain(bin_dir=bin_dir, compiler_path=compiler, source=source)

        logger.info("No usable %s found in %d probed locations", COMPILER_NAME, len(self.attempts))
        return None
