"""
BuildSettings — every input of a run after precedence is applied.

Built by ``picobuild.core.config.loader.load_settings`` from
flags > environment > picobuild.yml > defaults.  ``sources`` records
where each value came from, so later steps can tell a built-in default
from a value the user chose.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

SettingSource = Literal["flag", "env", "file", "default"]

# Settings that hold filesystem paths under the user's home by default.
HOME_PATH_SETTINGS = ("sdk_path", "extras_path", "toolchain_dir", "cache_root")


class BuildSettings(BaseModel):
    """Resolved configuration for one bootstrap + build run."""

    repo_root: Path
    sdk_path: Path
    extras_path: Path
    board: str = "pico2"
    build_type: str = "Debug"
    generator: str | None = None
    toolchain_dir: Path
    toolchain_url: str | None = None
    toolchain_version: str = "13.2.rel1"
    build_dir: Path
    cache_root: Path

    fast: bool = False
    offline: bool = False
    no_sudo: bool = False

    clean: bool = False
    target: str | None = None
    no_copy: bool = False

    sources: dict[str, SettingSource] = Field(default_factory=dict)

    @field_validator("build_type")
    @classmethod
    def _normalize_build_type(cls, value: str) -> str:
        known = {"debug": "Debug", "release": "Release",
                 "relwithdebinfo": "RelWithDebInfo", "minsizerel": "MinSizeRel"}
        normalized = known.get(value.strip().lower())
        if normalized is None:
            raise ValueError(f"unknown build type {value!r} (expected Debug or Release)")
        return normalized

    @field_validator("board")
    @classmethod
    def _board_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("board must not be empty")
        return value.strip()

    def source_of(self, name: str) -> SettingSource:
        return self.sources.get(name, "default")

    def is_default(self, name: str) -> bool:
        return self.source_of(name) == "default"

    @property
    def build_dir_explicit(self) -> bool:
        """True when the user chose the output directory."""
        return not self.is_default("build_dir")
