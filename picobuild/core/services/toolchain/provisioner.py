"""
Toolchain provisioner — download and unpack the official Arm GNU Toolchain.

Only runs when the operating mode allows network access.  Archives are
kept in a shared download cache keyed by file name, so a second run
(or a run after an interrupted extraction) reuses the archive instead
of fetching several hundred megabytes again.
"""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import urlparse

from picobuild.adapters.shell.command import CommandRunner
from picobuild.core.errors import ToolchainUnresolved
from picobuild.core.models.host import HostProfile
from picobuild.core.models.mode import OperatingMode
from picobuild.core.models.toolchain import COMPILER_NAME, ResolvedToolchain
from picobuild.core.services.build_dir import probe_writable
from picobuild.core.services.toolchain.locator import ToolchainLocator, is_executable

logger = logging.getLogger(__name__)

ARM_GNU_BASE = "https://developer.arm.com/-/media/Files/downloads/gnu/{version}/binrel"

# "<kernel>-<machine>" → host part of the archive name.
HOST_ARCHIVE_KEYS: dict[str, str] = {
    "darwin-arm64": "darwin-arm64",
    "darwin-x86_64": "darwin-x86_64",
    "linux-x86_64": "x86_64",
    "linux-aarch64": "aarch64",
    "linux-arm64": "aarch64",
}
FALLBACK_ARCHIVE_KEY = "x86_64"

_DOWNLOAD_TIMEOUT = 3600
_EXTRACT_TIMEOUT = 1800


def toolchain_url(host: HostProfile, version: str) -> str:
    """Official download URL for this host; unknown hosts get the x86_64 Linux build."""
    key = HOST_ARCHIVE_KEYS.get(host.platform_key, FALLBACK_ARCHIVE_KEY)
    base = ARM_GNU_BASE.format(version=version)
    return f"{base}/arm-gnu-toolchain-{version}-{key}-arm-none-eabi.tar.xz"


def archive_name(url: str) -> str:
    name = Path(urlparse(url).path).name
    if not name:
        raise ToolchainUnresolved(
            f"Cannot derive an archive name from {url}",
            "Set ARM_GNU_URL to a direct link to a .tar.xz archive.",
        )
    return name


class ToolchainProvisioner:
    """Fetch and unpack a toolchain into a fixed install directory."""

    def __init__(
        self,
        runner: CommandRunner,
        mode: OperatingMode,
        locator: ToolchainLocator,
        install_dir: Path,
        cache_root: Path,
        url_override: str | None = None,
    ) -> None:
        self.runner = runner
        self.mode = mode
        self.locator = locator
        self.install_dir = install_dir
        self.cache_dir = cache_root / "downloads"
        self.url_override = url_override

    @property
    def bin_dir(self) -> Path:
        return self.install_dir / "bin"

    def provision(self, host: HostProfile, version: str) -> ResolvedToolchain:
        """Install the toolchain (if needed) and return the installed compiler.

        Raises:
            ModeViolation: Network (or a needed sudo) is not allowed.
            ToolchainUnresolved: Download or extraction failed.
        """
        self.mode.require_network("Downloading the Arm GNU Toolchain")

        existing = self.locator.check(self.bin_dir, "install-dir")
        if existing is not None:
            logger.info("Toolchain already installed in %s; nothing to do", self.install_dir)
            return existing

        url = self.url_override or toolchain_url(host, version)
        logger.info("Installing official Arm GNU Toolchain %s to %s", version, self.install_dir)
        archive = self.download(url)
        self.extract(archive, host)

        installed = self.locator.check(self.bin_dir, "provisioned")
        if installed is not None:
            return installed
        compiler = self.bin_dir / COMPILER_NAME
        if not is_executable(compiler):
            raise ToolchainUnresolved(
                f"{archive.name} did not contain bin/{COMPILER_NAME}",
                f"Check ARM_GNU_URL / ARM_GNU_VERSION, or delete {archive} and retry.",
            )
        # Present but not yet verified; the caller re-checks and repairs.
        return ResolvedToolchain(bin_dir=self.bin_dir, compiler_path=compiler, source="provisioned")

    # ── Download ────────────────────────────────────────────────

    def download(self, url: str) -> Path:
        """Return the cached archive for ``url``, downloading it if needed."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        archive = self.cache_dir / archive_name(url)
        if archive.is_file() and archive.stat().st_size > 0:
            logger.info("Using cached archive %s", archive)
            return archive

        partial = archive.with_name(archive.name + ".part")
        cmd = self._download_command(url, partial)
        logger.info("Downloading %s", url)
        result = self.runner.run(cmd, timeout=_DOWNLOAD_TIMEOUT, network=True, capture=False)
        if not result.ok or not partial.is_file():
            raise ToolchainUnresolved(
                f"Download of {url} failed ({result.describe()})",
                f"Re-run to resume, or download it manually to {archive}.",
            )
        partial.rename(archive)
        return archive

    def _download_command(self, url: str, partial: Path) -> list[str]:
        """Multi-connection aria2c if present, else resumable curl, else wget."""
        if self.runner.which("aria2c"):
            return [
                "aria2c", "-c", "-x", "8", "-s", "8",
                "--dir", str(partial.parent), "--out", partial.name, url,
            ]
        if self.runner.which("curl"):
            return ["curl", "-fL", "--retry", "5", "-C", "-", "-o", str(partial), url]
        if self.runner.which("wget"):
            return ["wget", "-c", "-O", str(partial), url]
        raise ToolchainUnresolved(
            "No downloader found (aria2c, curl or wget)",
            "Install curl with your package manager and re-run.",
        )

    # ── Extract ─────────────────────────────────────────────────

    def _xz_threads_supported(self) -> bool:
        if not self.runner.which("xz"):
            return False
        result = self.runner.run(["xz", "--help"], timeout=10)
        return result.ok and "--threads" in result.stdout

    def extract(self, archive: Path, host: HostProfile) -> None:
        """Unpack ``archive`` into the install dir, dropping its top-level folder."""
        needs_sudo = False
        if not probe_writable(self.install_dir):
            if host.is_privileged:
                raise ToolchainUnresolved(
                    f"Cannot write to {self.install_dir}",
                    "Set ARM_GNU_DIR to a writable location.",
                )
            self.mode.require_privilege(f"Installing the toolchain into {self.install_dir}")
            needs_sudo = True
            mk = self.runner.run(["mkdir", "-p", str(self.install_dir)], needs_sudo=True, capture=False)
            if not mk.ok:
                raise ToolchainUnresolved(
                    f"Cannot create {self.install_dir} ({mk.describe()})",
                    "Set ARM_GNU_DIR to a writable location.",
                )

        if archive.name.endswith(".xz") and self._xz_threads_supported():
            cmd = ["tar", "--use-compress-program=xz -d -T0", "-xf", str(archive)]
        else:
            cmd = ["tar", "-xf", str(archive)]
        cmd += ["-C", str(self.install_dir), "--strip-components=1"]

        logger.info("Extracting %s", archive.name)
        result = self.runner.run(cmd, timeout=_EXTRACT_TIMEOUT, needs_sudo=needs_sudo)
        if not result.ok:
            raise ToolchainUnresolved(
                f"Extracting {archive.name} failed ({result.describe()})",
                f"Delete {archive} to force a fresh download, then re-run.",
            )
        logger.info("Installed toolchain; %s goes first on PATH for this build", self.bin_dir)
