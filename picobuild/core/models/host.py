"""HostProfile — immutable facts about the machine running the build."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict

OsFamily = Literal["mac", "linux", "other"]


class HostProfile(BaseModel):
    """OS family, CPU architecture and privilege facts, detected once."""

    model_config = ConfigDict(frozen=True)

    os_family: OsFamily
    kernel: str = ""                   # lowercased kernel name, e.g. "darwin"
    arch: str = ""                     # raw machine string, e.g. "arm64"
    is_privileged: bool = False
    real_user: str | None = None       # the invoking user behind sudo
    real_user_home: Path | None = None

    @property
    def is_mac(self) -> bool:
        return self.os_family == "mac"

    @property
    def platform_key(self) -> str:
        """``<kernel>-<arch>`` as used by the toolchain download table."""
        return f"{self.kernel}-{self.arch}"
