"""Toolchain models — a resolved cross-compiler threaded through the run."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict

COMPILER_NAME = "arm-none-eabi-gcc"
TARGET_TRIPLE = "arm-none-eabi"
SUPPORT_FILE = "nosys.specs"


class ResolvedToolchain(BaseModel):
    """A compiler that passed the usability check.

    ``support_file`` is the path the compiler reported for nosys.specs
    at the moment it was accepted.
    """

    model_config = ConfigDict(frozen=True)

    bin_dir: Path
    compiler_path: Path
    support_file: Path | None = None
    source: str = ""                   # probe that produced it

    def search_path(self, inherited: str | None = None) -> str:
        """PATH value with this toolchain's bin dir in front."""
        base = os.environ.get("PATH", "") if inherited is None else inherited
        return os.pathsep.join(p for p in (str(self.bin_dir), base) if p)

