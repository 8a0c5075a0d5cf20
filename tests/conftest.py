"""
Shared test fixtures and configuration.

Compilers are faked with small ``/bin/sh`` scripts that answer the two
queries picobuild makes.  Network and build tools (curl, tar, git,
cmake, ...) are simulated by ``FakeRunner`` so no test touches the
network; every other command runs for real.
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from picobuild.adapters.shell.command import CommandRunner
from picobuild.core.config.loader import load_settings
from picobuild.core.models.command import CommandResult
from picobuild.core.models.host import HostProfile


def make_compiler(bin_dir: Path, *, spec: Path | None = None, sysroot: Path | None = None) -> Path:
    """Write a fake arm-none-eabi-gcc into ``bin_dir``.

    It reports ``<sysroot>/lib/nosys.specs`` once that exists, else
    ``spec`` if given, else the bare file name (what GCC does when it
    cannot find the file).
    """
    bin_dir.mkdir(parents=True, exist_ok=True)
    compiler = bin_dir / "arm-none-eabi-gcc"
    root = str(sysroot) if sysroot else ""
    fallback = str(spec) if spec else "nosys.specs"
    compiler.write_text(textwrap.dedent(f"""\
        #!/bin/sh
        case "$1" in
          -print-file-name=nosys.specs)
            if [ -n "{root}" ] && [ -f "{root}/lib/nosys.specs" ]; then
              echo "{root}/lib/nosys.specs"
            else
              echo "{fallback}"
            fi
            ;;
          -print-sysroot)
            echo "{root}"
            ;;
        esac
    """))
    compiler.chmod(0o755)
    return compiler


def install_fake_toolchain(install_dir: Path) -> Path:
    """Lay out an unpacked Arm GNU Toolchain with a working nosys.specs."""
    spec = install_dir / "arm-none-eabi" / "lib" / "nosys.specs"
    spec.parent.mkdir(parents=True, exist_ok=True)
    spec.write_text("%rename link_gcc_c_sequence nosys_link_gcc_c_sequence\n")
    return make_compiler(install_dir / "bin", spec=spec)


class FakeRunner(CommandRunner):
    """CommandRunner that simulates external tools.

    Attributes:
        tools: Names ``which()`` reports as installed.
        fail: Tool names whose simulated run exits 1.
        calls: ``(argv, kwargs)`` for every simulated command.
        xz_help: stdout of ``xz --help``.
        build_outputs: File names ``cmake --build`` creates.
    """

    SIMULATED = {"curl", "aria2c", "wget", "tar", "xz", "git", "cmake", "brew", "mkdir"}

    def __init__(self, tools: set[str] | None = None) -> None:
        super().__init__()
        self.tools = set(tools if tools is not None else {"curl", "git", "cmake"})
        self.fail: set[str] = set()
        self.calls: list[tuple[list[str], dict]] = []
        self.xz_help = "  -T, --threads=NUM   use at most NUM threads\n"
        self.build_outputs = ["firmware.uf2", "firmware.elf"]
        self.brew_prefix = ""

    def which(self, name: str, path: str | None = None) -> str | None:
        return f"/usr/bin/{name}" if name in self.tools else None

    def commands(self, tool: str) -> list[list[str]]:
        return [argv for argv, _ in self.calls if argv and argv[0] == tool]

    def run(self, cmd, **kwargs) -> CommandResult:
        argv = [str(c) for c in cmd]
        if not argv or argv[0] not in self.SIMULATED:
            return super().run(argv, **kwargs)

        self.calls.append((argv, kwargs))
        self.history.append(argv)
        if kwargs.get("network"):
            self.network_calls += 1
        if argv[0] in self.fail:
            return CommandResult(cmd=argv, returncode=1, stderr=f"{argv[0]}: simulated failure")
        return getattr(self, f"_sim_{argv[0].replace('-', '_')}")(argv)

    # ── Simulations ─────────────────────────────────────────────

    def _sim_curl(self, argv: list[str]) -> CommandResult:
        Path(argv[argv.index("-o") + 1]).write_bytes(b"fake-archive")
        return CommandResult(cmd=argv)

    def _sim_wget(self, argv: list[str]) -> CommandResult:
        Path(argv[argv.index("-O") + 1]).write_bytes(b"fake-archive")
        return CommandResult(cmd=argv)

    def _sim_aria2c(self, argv: list[str]) -> CommandResult:
        out = Path(argv[argv.index("--dir") + 1]) / argv[argv.index("--out") + 1]
        out.write_bytes(b"fake-archive")
        return CommandResult(cmd=argv)

    def _sim_tar(self, argv: list[str]) -> CommandResult:
        install_fake_toolchain(Path(argv[argv.index("-C") + 1]))
        return CommandResult(cmd=argv)

    def _sim_xz(self, argv: list[str]) -> CommandResult:
        return CommandResult(cmd=argv, stdout=self.xz_help)

    def _sim_mkdir(self, argv: list[str]) -> CommandResult:
        Path(argv[-1]).mkdir(parents=True, exist_ok=True)
        return CommandResult(cmd=argv)

    def _sim_brew(self, argv: list[str]) -> CommandResult:
        return CommandResult(cmd=argv, stdout=self.brew_prefix)

    def _sim_git(self, argv: list[str]) -> CommandResult:
        if argv[1] == "clone":
            dest = Path(argv[-1])
            dest.mkdir(parents=True)
            if "pico-sdk" in argv[-2]:
                (dest / "pico_sdk_init.cmake").write_text("# sdk\n")
        return CommandResult(cmd=argv)

    def _sim_cmake(self, argv: list[str]) -> CommandResult:
        if "--build" in argv:
            out = Path(argv[argv.index("--build") + 1])
            for name in self.build_outputs:
                (out / name).write_bytes(b"\0")
        else:
            out = Path(argv[argv.index("-B") + 1])
            sdk = next(a.split("=", 1)[1] for a in argv if a.startswith("-DPICO_SDK_PATH="))
            out.mkdir(parents=True, exist_ok=True)
            (out / "CMakeCache.txt").write_text(
                f"PICO_SDK_PATH:PATH={sdk}\n"
                "CMAKE_C_COMPILER:FILEPATH=/opt/arm/bin/arm-none-eabi-gcc\n"
            )
        return CommandResult(cmd=argv)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def linux_host() -> HostProfile:
    return HostProfile(os_family="linux", kernel="linux", arch="x86_64", real_user="dev")


@pytest.fixture
def home(tmp_path: Path) -> Path:
    h = tmp_path / "home"
    h.mkdir()
    return h


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    r = tmp_path / "repo"
    r.mkdir()
    (r / "CMakeLists.txt").write_text("cmake_minimum_required(VERSION 3.13)\n")
    return r


@pytest.fixture
def make_settings(home: Path, repo: Path):
    """Settings factory: ``make_settings(fast=True, sdk_path=...)`` with an empty environment."""

    def _make(environ: dict[str, str] | None = None, **flags):
        flags.setdefault("repo_root", str(repo))
        return load_settings(flags, environ or {}, home=home, cwd=repo)

    return _make


@pytest.fixture
def sdk_tree(home: Path) -> Path:
    """A complete pico-sdk checkout at the default location."""
    sdk = home / "pico-sdk"
    sdk.mkdir()
    (sdk / "pico_sdk_init.cmake").write_text("# sdk\n")
    return sdk


@pytest.fixture
def compiler_factory():
    """``make_compiler(bin_dir, spec=..., sysroot=...)`` as a fixture."""
    return make_compiler


@pytest.fixture
def toolchain_installer():
    """``install_fake_toolchain(install_dir)`` as a fixture."""
    return install_fake_toolchain
