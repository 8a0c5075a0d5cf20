"""
Artifact hand-off — copy the newest UF2 onto a board in BOOTSEL mode.

A missing mount point (or a build that produced no UF2) is reported,
never treated as a failure.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from pydantic import BaseModel

from picobuild.core.models.host import HostProfile

logger = logging.getLogger(__name__)

VOLUME_NAME = "RPI-RP2"


class DeliveryResult(BaseModel):
    artifact: Path | None = None
    copied_to: Path | None = None
    message: str = ""


def newest_artifact(build_dir: Path, pattern: str = "*.uf2") -> Path | None:
    matches = [p for p in build_dir.glob(pattern) if p.is_file()]
    if not matches:
        return None
    return max(matches, key=lambda p: p.stat().st_mtime)


def mount_points(host: HostProfile) -> list[Path]:
    """Where the BOOTSEL drive shows up on macOS and common Linux desktops."""
    points = [Path("/Volumes") / VOLUME_NAME]
    if host.real_user:
        points += [
            Path("/media") / host.real_user / VOLUME_NAME,
            Path("/run/media") / host.real_user / VOLUME_NAME,
        ]
    return points


def deliver_artifact(
    build_dir: Path,
    host: HostProfile,
    mounts: list[Path] | None = None,
) -> DeliveryResult:
    """Copy the newest UF2 to the first mounted BOOTSEL volume, if any."""
    uf2 = newest_artifact(build_dir)
    if uf2 is None:
        return DeliveryResult(message="Build OK, but no UF2 was produced (check target name/outputs).")

    for mount in mounts if mounts is not None else mount_points(host):
        if mount.is_dir():
            logger.info("Copying %s to %s", uf2.name, mount)
            try:
                shutil.copyfile(uf2, mount / uf2.name)
            except OSError as e:
                logger.warning("Copy to %s failed: %s", mount, e)
                return DeliveryResult(artifact=uf2, message=f"Built: {uf2} (copy to {mount} failed: {e})")
            return DeliveryResult(artifact=uf2, copied_to=mount, message=f"Flashed {uf2.name} to {mount}")

    return DeliveryResult(
        artifact=uf2,
        message=f"Built: {uf2} (put the board in BOOTSEL mode to flash, then copy it manually)",
    )
