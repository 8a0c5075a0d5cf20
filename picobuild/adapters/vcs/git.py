"""
Git adapter — clone and submodule updates for SDK trees.

Uses the git CLI through CommandRunner; every operation here talks to
a remote and is flagged as a network command.
"""

from __future__ import annotations

import logging
from pathlib import Path

from picobuild.adapters.shell.command import CommandRunner
from picobuild.core.models.command import CommandResult

logger = logging.getLogger(__name__)


class GitClient:
    """Thin wrapper over the git commands picobuild needs."""

    def __init__(self, runner: CommandRunner, timeout: int | None = None) -> None:
        self.runner = runner
        self.timeout = timeout

    def clone_recursive(self, url: str, dest: Path) -> CommandResult:
        """Full recursive clone of ``url`` into ``dest``."""
        logger.info("Cloning %s into %s", url, dest)
        return self.runner.run(
            ["git", "clone", "--recursive", url, str(dest)],
            timeout=self.timeout,
            network=True,
            capture=False,
        )

    def update_submodules(self, path: Path) -> CommandResult:
        """Initialise and update submodules of an existing checkout in place."""
        logger.info("Updating submodules in %s", path)
        return self.runner.run(
            ["git", "-C", str(path), "submodule", "update", "--init", "--recursive"],
            timeout=self.timeout,
            network=True,
            capture=False,
        )
