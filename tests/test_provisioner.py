"""
Tests for toolchain provisioning — URL table, download cache, extraction.
"""

from pathlib import Path

import pytest

from picobuild.core.errors import ModeViolation, ToolchainUnresolved
from picobuild.core.models.host import HostProfile
from picobuild.core.services.mode import resolve_mode
from picobuild.core.services.toolchain.locator import ToolchainLocator
from picobuild.core.services.toolchain.probes import ToolchainProbe
from picobuild.core.services.toolchain.provisioner import (
    ToolchainProvisioner,
    archive_name,
    toolchain_url,
)

BASE = "https://developer.arm.com/-/media/Files/downloads/gnu/13.2.rel1/binrel"


def _host(kernel: str, arch: str) -> HostProfile:
    family = {"darwin": "mac", "linux": "linux"}.get(kernel, "other")
    return HostProfile(os_family=family, kernel=kernel, arch=arch)


def _provisioner(tmp_path: Path, runner, host, mode=None, url=None) -> ToolchainProvisioner:
    install = tmp_path / "arm-gnu-toolchain"
    locator = ToolchainLocator(runner, [ToolchainProbe("install-dir", lambda: [install / "bin"])], host)
    return ToolchainProvisioner(
        runner,
        mode or resolve_mode(),
        locator,
        install_dir=install,
        cache_root=tmp_path / "cache",
        url_override=url,
    )


class TestUrlTable:
    @pytest.mark.parametrize("kernel,arch,suffix", [
        ("darwin", "arm64", "darwin-arm64-arm-none-eabi.tar.xz"),
        ("darwin", "x86_64", "darwin-x86_64-arm-none-eabi.tar.xz"),
        ("linux", "x86_64", "x86_64-arm-none-eabi.tar.xz"),
        ("linux", "aarch64", "aarch64-arm-none-eabi.tar.xz"),
        ("linux", "riscv64", "x86_64-arm-none-eabi.tar.xz"),
        ("sunos", "sparc", "x86_64-arm-none-eabi.tar.xz"),
    ])
    def test_mapping(self, kernel, arch, suffix):
        url = toolchain_url(_host(kernel, arch), "13.2.rel1")
        assert url == f"{BASE}/arm-gnu-toolchain-13.2.rel1-{suffix}"

    def test_archive_name(self):
        assert archive_name("https://x.test/a/b/tc.tar.xz?dl=1") == "tc.tar.xz"

    def test_archive_name_requires_file(self):
        with pytest.raises(ToolchainUnresolved):
            archive_name("https://x.test/")


class TestProvision:
    def test_fast_mode_refuses(self, tmp_path, fake_runner, linux_host):
        prov = _provisioner(tmp_path, fake_runner, linux_host, mode=resolve_mode(fast=True))
        with pytest.raises(ModeViolation):
            prov.provision(linux_host, "13.2.rel1")
        assert fake_runner.network_calls == 0
        assert fake_runner.calls == []

    def test_download_and_extract(self, tmp_path, fake_runner, linux_host):
        prov = _provisioner(tmp_path, fake_runner, linux_host)
        tc = prov.provision(linux_host, "13.2.rel1")

        assert tc.bin_dir == tmp_path / "arm-gnu-toolchain" / "bin"
        located = prov.locator.locate()
        assert located is not None and located.bin_dir == tc.bin_dir
        assert tc.support_file is not None and tc.support_file.is_file()
        archive = tmp_path / "cache" / "downloads" / "arm-gnu-toolchain-13.2.rel1-x86_64-arm-none-eabi.tar.xz"
        assert archive.is_file()
        assert not archive.with_name(archive.name + ".part").exists()

        curl = fake_runner.commands("curl")[0]
        assert "-C" in curl and "--retry" in curl
        assert curl[-1] == f"{BASE}/{archive.name}"
        assert fake_runner.network_calls == 1

        tar = fake_runner.commands("tar")[0]
        assert "--strip-components=1" in tar
        assert tar[tar.index("-C") + 1] == str(tmp_path / "arm-gnu-toolchain")

    def test_fast_mode_refuses_even_when_installed(self, tmp_path, fake_runner, linux_host, toolchain_installer):
        toolchain_installer(tmp_path / "arm-gnu-toolchain")
        prov = _provisioner(tmp_path, fake_runner, linux_host, mode=resolve_mode(offline=True))
        with pytest.raises(ModeViolation):
            prov.provision(linux_host, "13.2.rel1")
        assert fake_runner.calls == []

    def test_idempotent_when_installed(self, tmp_path, fake_runner, linux_host, toolchain_installer):
        toolchain_installer(tmp_path / "arm-gnu-toolchain")
        prov = _provisioner(tmp_path, fake_runner, linux_host)
        tc = prov.provision(linux_host, "13.2.rel1")
        assert tc.source == "install-dir"
        assert fake_runner.calls == []

    def test_cached_archive_reused(self, tmp_path, fake_runner, linux_host):
        downloads = tmp_path / "cache" / "downloads"
        downloads.mkdir(parents=True)
        (downloads / "tc.tar.xz").write_bytes(b"cached")
        prov = _provisioner(tmp_path, fake_runner, linux_host, url="https://mirror.test/tc.tar.xz")
        prov.provision(linux_host, "13.2.rel1")
        assert fake_runner.commands("curl") == []
        assert fake_runner.network_calls == 0
        assert fake_runner.commands("tar")

    def test_prefers_aria2c(self, tmp_path, fake_runner, linux_host):
        fake_runner.tools.add("aria2c")
        prov = _provisioner(tmp_path, fake_runner, linux_host)
        prov.provision(linux_host, "13.2.rel1")
        aria = fake_runner.commands("aria2c")[0]
        assert "-x" in aria and "-c" in aria
        assert fake_runner.commands("curl") == []

    def test_wget_fallback(self, tmp_path, fake_runner, linux_host):
        fake_runner.tools = {"wget"}
        _provisioner(tmp_path, fake_runner, linux_host).provision(linux_host, "13.2.rel1")
        assert fake_runner.commands("wget")

    def test_no_downloader(self, tmp_path, fake_runner, linux_host):
        fake_runner.tools = set()
        with pytest.raises(ToolchainUnresolved, match="No downloader"):
            _provisioner(tmp_path, fake_runner, linux_host).provision(linux_host, "13.2.rel1")

    def test_threaded_xz_when_supported(self, tmp_path, fake_runner, linux_host):
        fake_runner.tools.add("xz")
        _provisioner(tmp_path, fake_runner, linux_host).provision(linux_host, "13.2.rel1")
        tar = fake_runner.commands("tar")[0]
        assert "--use-compress-program=xz -d -T0" in tar

    def test_single_threaded_without_threads(self, tmp_path, fake_runner, linux_host):
        fake_runner.tools.add("xz")
        fake_runner.xz_help = "usage: xz [OPTION]... [FILE]...\n"
        _provisioner(tmp_path, fake_runner, linux_host).provision(linux_host, "13.2.rel1")
        tar = fake_runner.commands("tar")[0]
        assert tar[:3] == ["tar", "-xf", tar[2]]
        assert not any("use-compress-program" in a for a in tar)

    def test_download_failure(self, tmp_path, fake_runner, linux_host):
        fake_runner.fail.add("curl")
        with pytest.raises(ToolchainUnresolved, match="Download"):
            _provisioner(tmp_path, fake_runner, linux_host).provision(linux_host, "13.2.rel1")
        assert not (tmp_path / "cache" / "downloads" /
                    "arm-gnu-toolchain-13.2.rel1-x86_64-arm-none-eabi.tar.xz").exists()

    def test_extract_failure(self, tmp_path, fake_runner, linux_host):
        fake_runner.fail.add("tar")
        with pytest.raises(ToolchainUnresolved, match="Extracting"):
            _provisioner(tmp_path, fake_runner, linux_host).provision(linux_host, "13.2.rel1")

    def test_unwritable_install_dir_needs_privilege(self, tmp_path, fake_runner, monkeypatch):
        host = HostProfile(os_family="linux", kernel="linux", arch="x86_64", is_privileged=False)
        monkeypatch.setattr(
            "picobuild.core.services.toolchain.provisioner.probe_writable", lambda path: False
        )
        prov = _provisioner(tmp_path, fake_runner, host, mode=resolve_mode(no_sudo=True))
        with pytest.raises(ModeViolation):
            prov.provision(host, "13.2.rel1")
        assert fake_runner.commands("tar") == []

    def test_unwritable_install_dir_uses_sudo(self, tmp_path, fake_runner, monkeypatch):
        host = HostProfile(os_family="linux", kernel="linux", arch="x86_64", is_privileged=False)
        monkeypatch.setattr(
            "picobuild.core.services.toolchain.provisioner.probe_writable", lambda path: False
        )
        _provisioner(tmp_path, fake_runner, host).provision(host, "13.2.rel1")
        (tar_argv, tar_kwargs), = [c for c in fake_runner.calls if c[0][0] == "tar"]
        assert tar_kwargs["needs_sudo"] is True
        assert fake_runner.commands("mkdir")
