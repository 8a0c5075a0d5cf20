"""
SDK resolver — make sure pico-sdk (and optionally pico-extras) exist.

Fast/offline modes only check.  Otherwise a missing tree is cloned
recursively and an existing one gets an in-place submodule update; an
existing checkout is never deleted or cloned again.
"""

from __future__ import annotations

import logging

from picobuild.adapters.vcs.git import GitClient
from picobuild.core.errors import SdkMissing
from picobuild.core.models.mode import OperatingMode
from picobuild.core.models.sdk import SdkReport, SdkTree
from picobuild.core.models.settings import BuildSettings

logger = logging.getLogger(__name__)

PICO_SDK_URL = "https://github.com/raspberrypi/pico-sdk"
PICO_EXTRAS_URL = "https://github.com/raspberrypi/pico-extras"
PICO_SDK_MARKER = "pico_sdk_init.cmake"


def default_trees(settings: BuildSettings) -> list[SdkTree]:
    """The trees a Pico build needs: pico-sdk (required), pico-extras (optional)."""
    return [
        SdkTree(name="pico-sdk", path=settings.sdk_path, kind="sdk",
                upstream=PICO_SDK_URL, marker=PICO_SDK_MARKER),
        SdkTree(name="pico-extras", path=settings.extras_path, kind="extras",
                upstream=PICO_EXTRAS_URL),
    ]


def _env_var(tree: SdkTree) -> str:
    return "PICO_SDK_PATH" if tree.required else "PICO_EXTRAS_PATH"


class SdkResolver:
    """Check, clone or update SDK trees according to the operating mode."""

    def __init__(self, git: GitClient) -> None:
        self.git = git

    def ensure(self, trees: list[SdkTree], mode: OperatingMode) -> SdkReport:
        """Ensure every tree is usable.

        Raises:
            SdkMissing: The required SDK is absent (or its clone/update failed).
        """
        report = SdkReport(trees=trees)
        for tree in trees:
            if mode.network_allowed:
                self._fetch(tree, mode, report)
            else:
                self._check(tree, mode, report)
        report.ok = all(t.present for t in trees if t.required)
        return report

    def _check(self, tree: SdkTree, mode: OperatingMode, report: SdkReport) -> None:
        if tree.check():
            logger.info("✔ %s present at %s", tree.name, tree.path)
            return
        what = "incomplete" if tree.path.is_dir() else "missing"
        if tree.required:
            raise SdkMissing(
                f"{tree.name} {what} at {tree.path} ({mode.label} mode does not clone)",
                f"Clone {tree.upstream} into {tree.path} (git clone --recursive), "
                f"or set {_env_var(tree)} to an existing checkout.",
            )
        self._warn(report, f"{tree.name} {what} at {tree.path}; continuing without it")

    def _fetch(self, tree: SdkTree, mode: OperatingMode, report: SdkReport) -> None:
        mode.require_network(f"Fetching {tree.name}")

        if tree.path.exists():
            result = self.git.update_submodules(tree.path)
            action = "update"
            if result.ok:
                report.updated.append(tree.name)
        else:
            result = self.git.clone_recursive(tree.upstream, tree.path)
            action = "clone"
            if result.ok:
                report.cloned.append(tree.name)

        tree.check()
        if result.ok and tree.present:
            return

        if result.ok:
            what = "incomplete" if tree.path.is_dir() else "missing"
            problem = f"{tree.name} {what} at {tree.path} after git {action}"
        else:
            problem = f"git {action} of {tree.name} failed ({result.describe()})"
        if tree.required:
            if tree.present:
                # Submodule update failed but the checkout itself is usable.
                self._warn(report, problem)
                return
            raise SdkMissing(
                problem,
                f"Check network access, or clone {tree.upstream} into {tree.path} manually "
                f"and set {_env_var(tree)}.",
            )
        self._warn(report, problem if tree.present else f"{problem}; continuing without it")

    @staticmethod
    def _warn(report: SdkReport, message: str) -> None:
        logger.warning(message)
        report.warnings.append(message)
