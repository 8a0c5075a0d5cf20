"""
Domain models — Pydantic types for picobuild.

All models are re-exported here for convenient access:

    from picobuild.core.models import OperatingMode, HostProfile, ResolvedToolchain
"""

from picobuild.core.models.build_dir import BuildDirectoryState
from picobuild.core.models.command import CommandResult
from picobuild.core.models.host import HostProfile
from picobuild.core.models.mode import OperatingMode
from picobuild.core.models.sdk import SdkReport, SdkTree
from picobuild.core.models.settings import BuildSettings
from picobuild.core.models.toolchain import ResolvedToolchain

__all__ = [
    # build_dir.py
    "BuildDirectoryState",
    # settings.py
    "BuildSettings",
    # command.py
    "CommandResult",
    # host.py
    "HostProfile",
    # mode.py
    "OperatingMode",
    # toolchain.py
    "ResolvedToolchain",
    # sdk.py
    "SdkReport",
    "SdkTree",
]
