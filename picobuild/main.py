"""
picobuild — CLI entrypoint.

Usage:
    picobuild --help
    picobuild build --board pico2 --type Release
    picobuild build --offline
    picobuild doctor --json
"""

from __future__ import annotations

import os

import click

from picobuild import __version__
from picobuild.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    resolve_level,
    setup_logging,
)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="picobuild")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, debug: bool) -> None:
    """picobuild — bootstrap the toolchain and SDK, then build Pico firmware."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet, environ=os.environ),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
    )


from picobuild.ui.cli.build import build, doctor  # noqa: E402

cli.add_command(build)
cli.add_command(doctor)


if __name__ == "__main__":
    cli()
