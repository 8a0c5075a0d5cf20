"""
Build invoker — CMake configure + build against the resolved inputs.

This is the boundary to the native build system.  The toolchain only
reaches PATH here, in the environment of the cmake subprocesses.
Build diagnostics stream straight to the terminal and are not
reinterpreted; a failing step becomes a BuildFailure with cmake's exit
code.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field

from picobuild.adapters.shell.command import CommandRunner
from picobuild.core.errors import BuildFailure
from picobuild.core.models.toolchain import ResolvedToolchain

logger = logging.getLogger(__name__)

NINJA = "Ninja"
MAKEFILES = "Unix Makefiles"
ARTIFACT_PATTERNS = ("*.uf2", "*.elf")


class BuildRequest(BaseModel):
    """Everything the native build needs, already resolved."""

    source_dir: Path
    build_dir: Path
    toolchain: ResolvedToolchain
    sdk_path: Path
    extras_path: Path | None = None
    board: str
    build_type: str
    generator: str
    target: str | None = None
    jobs: int = 4


class BuildOutcome(BaseModel):
    ok: bool = True
    returncode: int = 0
    artifacts: list[Path] = Field(default_factory=list)


def select_generator(runner: CommandRunner, override: str | None = None) -> str:
    """Explicit override, else Ninja when installed, else Unix Makefiles."""
    if override:
        return override
    return NINJA if runner.which("ninja") else MAKEFILES


def parallel_jobs() -> int:
    return os.cpu_count() or 4


def collect_artifacts(build_dir: Path) -> list[Path]:
    """Firmware images directly in ``build_dir``, newest first."""
    found = {p for pattern in ARTIFACT_PATTERNS for p in build_dir.glob(pattern) if p.is_file()}
    return sorted(found, key=lambda p: p.stat().st_mtime, reverse=True)


class BuildInvoker:
    """Run ``cmake`` configure and build steps."""

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def environment(self, request: BuildRequest) -> dict[str, str]:
        env = {
            "PATH": request.toolchain.search_path(),
            "PICO_SDK_PATH": str(request.sdk_path),
            "PICO_BOARD": request.board,
        }
        if request.extras_path is not None:
            env["PICO_EXTRAS_PATH"] = str(request.extras_path)
        return env

    def configure_command(self, request: BuildRequest) -> list[str]:
        cmd = [
            "cmake",
            "-S", str(request.source_dir),
            "-B", str(request.build_dir),
            "-G", request.generator,
            f"-DPICO_BOARD={request.board}",
            f"-DCMAKE_BUILD_TYPE={request.build_type}",
            f"-DPICO_SDK_PATH={request.sdk_path}",
        ]
        if request.extras_path is not None:
            cmd.append(f"-DPICO_EXTRAS_PATH={request.extras_path}")
        return cmd

    def build_command(self, request: BuildRequest) -> list[str]:
        cmd = ["cmake", "--build", str(request.build_dir), f"-j{request.jobs}"]
        if request.target:
            cmd += ["--target", request.target]
        return cmd

    def invoke(self, request: BuildRequest) -> BuildOutcome:
        """Configure and build.

        Raises:
            BuildFailure: Either cmake step exited non-zero.
        """
        env = self.environment(request)

        logger.info("Configuring CMake (%s) in %s", request.generator, request.build_dir)
        configured = self.runner.run(self.configure_command(request), env_overrides=env, capture=False)
        if not configured.ok:
            raise BuildFailure(
                f"CMake configure failed ({configured.describe()})",
                "See the CMake output above.",
                returncode=configured.returncode,
            )

        logger.info("Building with -j%d", request.jobs)
        built = self.runner.run(self.build_command(request), env_overrides=env, capture=False)
        if not built.ok:
            raise BuildFailure(
                f"Build failed ({built.describe()})",
                "See the compiler output above.",
                returncode=built.returncode,
            )

        return BuildOutcome(ok=True, returncode=0, artifacts=collect_artifacts(request.build_dir))
