"""
Toolchain resolution — locate, repair, provision, in that order.

Returns an explicit ResolvedToolchain; the process PATH is never
modified.  The build invoker puts ``bin_dir`` on PATH for its own
subprocesses only.
"""

from __future__ import annotations

import logging
from functools import partial

from picobuild.adapters.shell.command import CommandRunner
from picobuild.core.errors import SpecUnresolved, ToolchainUnresolved
from picobuild.core.models.host import HostProfile
from picobuild.core.models.mode import OperatingMode
from picobuild.core.models.settings import BuildSettings
from picobuild.core.models.toolchain import COMPILER_NAME, SUPPORT_FILE, ResolvedToolchain
from picobuild.core.services.toolchain.locator import ToolchainLocator, query_sysroot
from picobuild.core.services.toolchain.pipeline import resolve_with_fallback
from picobuild.core.services.toolchain.probes import ToolchainProbe, default_probes
from picobuild.core.services.toolchain.provisioner import ToolchainProvisioner
from picobuild.core.services.toolchain.spec_repair import SpecRepair

logger = logging.getLogger(__name__)


def resolve_toolchain(
    settings: BuildSettings,
    host: HostProfile,
    mode: OperatingMode,
    runner: CommandRunner,
    *,
    probes: list[ToolchainProbe] | None = None,
) -> ResolvedToolchain:
    """Find (or install) a usable arm-none-eabi-gcc.

    Raises:
        SpecUnresolved: A compiler exists but nosys.specs cannot be resolved.
        ToolchainUnresolved: No compiler, and provisioning is disabled or failed.
        ModeViolation: Provisioning needed a forbidden operation.
    """
    if probes is None:
        probes = default_probes(settings.toolchain_dir)
    locator = ToolchainLocator(runner, probes, host)
    repairer = SpecRepair(runner, host)

    def repair_unusable() -> bool:
        broken = locator.last_unusable
        if broken is None:
            return False
        fixed = resolve_with_fallback(
            lambda: locator.check(broken.bin_dir, broken.source),
            lambda: repairer.repair(broken),
            label=SUPPORT_FILE,
        )
        return fixed is not None

    provision = None
    if mode.install_allowed:
        provisioner = ToolchainProvisioner(
            runner,
            mode,
            locator,
            install_dir=settings.toolchain_dir,
            cache_root=settings.cache_root,
            url_override=settings.toolchain_url,
        )
        provision = partial(provisioner.provision, host, settings.toolchain_version)

    toolchain = resolve_with_fallback(locator.locate, repair_unusable, provision, label=COMPILER_NAME)
    if toolchain is not None:
        return toolchain

    broken = locator.last_unusable
    if broken is not None:
        sysroot = query_sysroot(runner, broken.compiler_path) or "(none reported)"
        raise SpecUnresolved(
            f"{broken.compiler_path} cannot resolve {SUPPORT_FILE} (sysroot: {sysroot})",
            f"Place {SUPPORT_FILE} under {sysroot}/lib, or install the official "
            f"Arm GNU Toolchain into {settings.toolchain_dir} (ARM_GNU_DIR).",
        )

    if mode.fast:
        hint = (
            f"{mode.label} mode never downloads toolchains: install {COMPILER_NAME} manually "
            f"(e.g. the official Arm GNU Toolchain into {settings.toolchain_dir}) "
            "or point ARM_GNU_DIR at an existing install."
        )
    else:
        hint = (
            f"Install {COMPILER_NAME} with your package manager, or set ARM_GNU_DIR "
            "to an existing Arm GNU Toolchain install."
        )
    raise ToolchainUnresolved(f"{COMPILER_NAME} not found", hint)
