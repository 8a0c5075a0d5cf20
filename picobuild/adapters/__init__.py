"""Adapters — bindings to the external tools picobuild drives.

Public re-exports for convenient access.
"""

from picobuild.adapters.shell.command import CommandRunner
from picobuild.adapters.vcs.git import GitClient

__all__ = [
    "CommandRunner",
    "GitClient",
]
