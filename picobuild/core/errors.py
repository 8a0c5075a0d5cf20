"""
Error taxonomy — every fatal condition a run can end with.

Each error carries a one-line summary, a remediation hint and the
process exit code the CLI uses.  Nothing below the CLI catches these:
they abort the run as soon as they are raised.
"""

from __future__ import annotations


class PicobuildError(Exception):
    """Base class for fatal bootstrap errors."""

    exit_code: int = 1

    def __init__(self, summary: str, hint: str = "", *, exit_code: int | None = None) -> None:
        super().__init__(summary)
        self.summary = summary
        self.hint = hint
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(PicobuildError):
    """Raised when settings (flags, environment, picobuild.yml) are invalid."""

    exit_code = 2


class ModeViolation(PicobuildError):
    """A network or privileged operation was requested in a mode that forbids it."""

    exit_code = 3


class ToolchainUnresolved(PicobuildError):
    """No usable cross-compiler was found and none could be provisioned."""

    exit_code = 4


class SpecUnresolved(PicobuildError):
    """A compiler exists but its nosys.specs cannot be found or repaired."""

    exit_code = 5


class SdkMissing(PicobuildError):
    """The primary SDK tree is absent and cannot be cloned."""

    exit_code = 6


class DirectoryUnwritable(PicobuildError):
    """Neither the requested output directory nor any fallback is writable."""

    exit_code = 7


class UnsupportedHost(PicobuildError):
    """The host operating system is not macOS or Linux."""

    exit_code = 8


class BuildFailure(PicobuildError):
    """The native build system reported failure.

    The exit code is the build tool's own, so wrappers see the same
    status they would get from running cmake directly.
    """

    def __init__(self, summary: str, hint: str = "", *, returncode: int = 1) -> None:
        super().__init__(summary, hint, exit_code=returncode or 1)
        self.returncode = returncode
