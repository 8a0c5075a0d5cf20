"""BuildDirectoryState — the output directory handed to the build invoker."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class BuildDirectoryState(BaseModel):
    """Resolved output directory plus what was learned from its cache."""

    path: Path
    requested: Path
    writable: bool = False
    redirected: bool = False
    cleaned: bool = False
    cached_sdk_path: str | None = None
    cached_compiler_forced: bool = False
    invalidated: list[Path] = Field(default_factory=list)
    attempted: list[Path] = Field(default_factory=list)
