"""
CLI commands for building — ``build`` and ``doctor``.

Thin wrappers over ``picobuild.core.use_cases.build``.  Fatal errors
print a one-line summary plus a remediation hint to stderr and exit
with the error's own code.
"""

from __future__ import annotations

import json
import sys

import click

from picobuild.core.errors import PicobuildError


def _fail(err: PicobuildError) -> None:
    click.secho(f"❌ {err.summary}", fg="red", err=True)
    if err.hint:
        click.echo(f"   hint: {err.hint}", err=True)
    sys.exit(err.exit_code)


@click.command()
@click.option("--fast", is_flag=True, help="No network, no sudo, no installs; everything must be on disk.")
@click.option("--offline", is_flag=True, help="Like --fast (implies it).")
@click.option("--no-sudo", "no_sudo", is_flag=True, help="Never elevate privileges.")
@click.option("--board", "-b", default=None, help="PICO_BOARD (default: pico2).")
@click.option("--type", "-t", "build_type", default=None, help="Debug or Release (default: Debug).")
@click.option("--generator", "-g", default=None, help="CMake generator (default: Ninja if installed).")
@click.option("--build-dir", "-o", "build_dir", type=click.Path(), default=None,
              help="Output directory (default: <repo>/build).")
@click.option("--repo-root", "repo_root", type=click.Path(), default=None,
              help="Project root containing CMakeLists.txt (default: auto-detect).")
@click.option("--target", default=None, help="Build only this CMake target.")
@click.option("--no-copy", "no_copy", is_flag=True, help="Do not copy the UF2 to a BOOTSEL drive.")
@click.option("--clean", "-c", is_flag=True, help="Remove the build directory before configuring.")
@click.pass_context
def build(ctx: click.Context, **flags) -> None:
    """Resolve toolchain + SDK, configure with CMake and build."""
    from picobuild.core.config.loader import load_settings
    from picobuild.core.use_cases.build import run_build

    quiet = ctx.obj.get("quiet", False) if ctx.obj else False
    try:
        settings = load_settings(flags)
        if not quiet:
            click.echo(f"Repo:        {settings.repo_root}")
            click.echo(f"SDK:         {settings.sdk_path}")
            click.echo(f"Extras:      {settings.extras_path}")
            click.echo(f"Board:       {settings.board}")
            click.echo(f"Build type:  {settings.build_type}")
        result = run_build(settings)
    except PicobuildError as e:
        _fail(e)
        return

    for warning in result.warnings:
        click.secho(f"⚠️  {warning}", fg="yellow", err=True)

    if not quiet:
        click.echo(f"Mode:        {result.mode.label}")
        click.echo(f"Toolchain:   {result.toolchain.compiler_path}")
        click.echo(f"Generator:   {result.generator}")
        click.echo(f"Build dir:   {result.build_dir.path}")
        if result.build_dir.redirected:
            click.secho(f"   (redirected from {result.build_dir.requested})", fg="yellow")
        for stale in result.build_dir.invalidated:
            click.echo(f"   removed stale {stale}")
        if result.env_file_written:
            click.echo(f"Wrote {result.settings.repo_root / '.env'}")

    if result.delivery is not None:
        click.echo(result.delivery.message)
    click.secho("✅ Done.", fg="green")


@click.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--repo-root", "repo_root", type=click.Path(), default=None, help="Project root.")
def doctor(as_json: bool, repo_root: str | None) -> None:
    """Show what a build would use, without changing anything."""
    from picobuild.core.config.loader import load_settings
    from picobuild.core.use_cases.build import diagnose

    try:
        report = diagnose(load_settings({"repo_root": repo_root}))
    except PicobuildError as e:
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps(report, indent=2))
        return

    host = report["host"]
    ok = "✅" if report["supported"] else "❌"
    click.echo(f"{ok} Host: {host['os_family']} ({host['kernel']}/{host['arch']})"
               + ("  [root]" if host["is_privileged"] else ""))
    click.echo(f"   Mode: {report['mode']['label']}")

    tc = report["toolchain"]
    if tc["usable"]:
        click.echo(f"✅ Toolchain: {tc['compiler']}")
        click.echo(f"   nosys.specs: {tc['support_file']}")
    elif tc["unusable"]:
        click.secho(f"⚠️  Toolchain: {tc['unusable']} cannot resolve nosys.specs", fg="yellow")
    else:
        click.secho(f"❌ Toolchain: not found (install dir: {tc['install_dir']})", fg="red")

    for tree in report["sdk"]:
        icon = "✅" if tree["present"] else ("❌" if tree["kind"] == "sdk" else "⚠️ ")
        click.echo(f"{icon} {tree['name']}: {tree['path']}")

    bd = report["build_dir"]
    click.echo(f"   Build dir: {bd['path']}" + (" (explicit)" if bd["explicit"] else ""))
    click.echo(f"   Generator: {report['generator']}")
