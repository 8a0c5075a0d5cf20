"""SDK tree models."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

SdkKind = Literal["sdk", "extras"]


class SdkTree(BaseModel):
    """A required (``sdk``) or optional (``extras``) source checkout."""

    name: str
    path: Path
    kind: SdkKind = "sdk"
    upstream: str = ""
    marker: str | None = None          # file that proves the checkout is complete
    present: bool = False

    @property
    def required(self) -> bool:
        return self.kind == "sdk"

    def check(self) -> bool:
        """Refresh and return ``present``."""
        ok = self.path.is_dir()
        if ok and self.marker:
            ok = (self.path / self.marker).is_file()
        self.present = ok
        return ok


class SdkReport(BaseModel):
    """Outcome of ``SdkResolver.ensure``."""

    ok: bool = True
    warnings: list[str] = Field(default_factory=list)
    trees: list[SdkTree] = Field(default_factory=list)
    cloned: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)

    def tree(self, name: str) -> SdkTree | None:
        for t in self.trees:
            if t.name == name:
                return t
        return None
