"""
Build use case — the whole bootstrap-and-build run, start to finish.

Strictly sequential; every step consumes the previous step's output:

    mode → host → toolchain → SDK trees → .env → build dir → cmake → hand-off

Any fatal condition raises a PicobuildError and aborts the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from picobuild.adapters.shell.command import CommandRunner
from picobuild.adapters.vcs.git import GitClient
from picobuild.core.models.build_dir import BuildDirectoryState
from picobuild.core.models.host import HostProfile
from picobuild.core.models.mode import OperatingMode
from picobuild.core.models.sdk import SdkReport
from picobuild.core.models.settings import BuildSettings
from picobuild.core.models.toolchain import ResolvedToolchain
from picobuild.core.persistence.env_file import write_env_file
from picobuild.core.services.artifacts import DeliveryResult, deliver_artifact
from picobuild.core.services.build_dir import BuildDirectoryManager
from picobuild.core.services.builder import (
    BuildInvoker,
    BuildOutcome,
    BuildRequest,
    parallel_jobs,
    select_generator,
)
from picobuild.core.services.host import detect_host, rehome_defaults, require_supported_host
from picobuild.core.services.mode import resolve_mode
from picobuild.core.services.sdk import SdkResolver, default_trees
from picobuild.core.services.toolchain.locator import ToolchainLocator
from picobuild.core.services.toolchain.probes import ToolchainProbe, default_probes
from picobuild.core.services.toolchain.service import resolve_toolchain

logger = logging.getLogger(__name__)


@dataclass
class BuildRunResult:
    """Everything a successful run resolved and produced."""

    settings: BuildSettings
    mode: OperatingMode
    host: HostProfile
    toolchain: ResolvedToolchain
    sdk: SdkReport
    build_dir: BuildDirectoryState
    generator: str
    outcome: BuildOutcome
    env_file_written: bool = False
    delivery: DeliveryResult | None = None
    warnings: list[str] = field(default_factory=list)


def run_build(
    settings: BuildSettings,
    *,
    runner: CommandRunner | None = None,
    host: HostProfile | None = None,
    probes: list[ToolchainProbe] | None = None,
    mounts: list[Path] | None = None,
) -> BuildRunResult:
    """Resolve every input, then configure and build.

    ``host``, ``probes`` and ``mounts`` replace the live probes of the
    machine; the CLI leaves them unset.

    Raises:
        PicobuildError: Any fatal condition (see picobuild.core.errors).
    """
    runner = runner or CommandRunner()

    mode = resolve_mode(settings.fast, settings.offline, settings.no_sudo)
    logger.info("Mode: %s", mode.label)

    host = host or detect_host()
    require_supported_host(host)
    settings = rehome_defaults(settings, host)

    toolchain = resolve_toolchain(settings, host, mode, runner, probes=probes)

    sdk = SdkResolver(GitClient(runner)).ensure(default_trees(settings), mode)
    extras = sdk.tree("pico-extras")
    extras_path = extras.path if extras is not None and extras.present else None

    env_written = write_env_file(settings.repo_root, settings)

    generator = select_generator(runner, settings.generator)
    manager = BuildDirectoryManager(
        settings.cache_root,
        settings.sdk_path,
        name=settings.repo_root.name or "build",
        generator=generator,
    )
    build_dir = manager.resolve(settings.build_dir, settings.clean, explicit=settings.build_dir_explicit)

    outcome = BuildInvoker(runner).invoke(BuildRequest(
        source_dir=settings.repo_root,
        build_dir=build_dir.path,
        toolchain=toolchain,
        sdk_path=settings.sdk_path,
        extras_path=extras_path,
        board=settings.board,
        build_type=settings.build_type,
        generator=generator,
        target=settings.target,
        jobs=parallel_jobs(),
    ))

    delivery = None if settings.no_copy else deliver_artifact(build_dir.path, host, mounts)

    return BuildRunResult(
        settings=settings,
        mode=mode,
        host=host,
        toolchain=toolchain,
        sdk=sdk,
        build_dir=build_dir,
        generator=generator,
        outcome=outcome,
        env_file_written=env_written,
        delivery=delivery,
        warnings=list(sdk.warnings),
    )


def diagnose(
    settings: BuildSettings,
    *,
    runner: CommandRunner | None = None,
    host: HostProfile | None = None,
    probes: list[ToolchainProbe] | None = None,
) -> dict:
    """Read-only report of what a build would resolve.

    No network, no repairs, no downloads, no writes.
    """
    runner = runner or CommandRunner()
    mode = resolve_mode(settings.fast, settings.offline, settings.no_sudo)
    host = host or detect_host()
    settings = rehome_defaults(settings, host)

    report: dict = {
        "host": host.model_dump(mode="json"),
        "mode": mode.model_dump(mode="json") | {"label": mode.label},
        "supported": host.os_family != "other",
    }

    locator = ToolchainLocator(runner, probes if probes is not None else default_probes(settings.toolchain_dir), host)
    found = locator.locate() if report["supported"] else None
    report["toolchain"] = {
        "usable": found is not None,
        "compiler": str(found.compiler_path) if found else None,
        "support_file": str(found.support_file) if found and found.support_file else None,
        "unusable": str(locator.last_unusable.compiler_path) if locator.last_unusable else None,
        "attempts": locator.attempts,
        "install_dir": str(settings.toolchain_dir),
    }

    trees = default_trees(settings)
    report["sdk"] = [
        {"name": t.name, "path": str(t.path), "kind": t.kind, "present": t.check()}
        for t in trees
    ]
    report["build_dir"] = {
        "path": str(settings.build_dir),
        "explicit": settings.build_dir_explicit,
        "exists": settings.build_dir.exists(),
    }
    report["generator"] = select_generator(runner, settings.generator)
    report["sources"] = dict(settings.sources)
    return report
