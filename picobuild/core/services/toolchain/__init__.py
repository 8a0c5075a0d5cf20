"""Toolchain resolution: probe list, locator, nosys.specs repair, provisioning."""

from picobuild.core.services.toolchain.locator import ToolchainLocator
from picobuild.core.services.toolchain.pipeline import resolve_with_fallback
from picobuild.core.services.toolchain.probes import ToolchainProbe, default_probes
from picobuild.core.services.toolchain.provisioner import ToolchainProvisioner, toolchain_url
from picobuild.core.services.toolchain.service import resolve_toolchain
from picobuild.core.services.toolchain.spec_repair import SpecRepair

__all__ = [
    "SpecRepair",
    "ToolchainLocator",
    "ToolchainProbe",
    "ToolchainProvisioner",
    "default_probes",
    "resolve_toolchain",
    "resolve_with_fallback",
    "toolchain_url",
]
