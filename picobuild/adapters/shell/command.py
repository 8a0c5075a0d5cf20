"""
Shell command adapter — the SINGLE PLACE where ``subprocess.run`` is called.

Every external tool picobuild touches (the cross-compiler, git, curl,
tar, cmake) goes through ``CommandRunner.run``.  Logging, sudo
prefixing, environment handling and network accounting are centralised
here so the services above stay free of process plumbing.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from collections.abc import Mapping, Sequence

from picobuild.core.models.command import CommandResult

logger = logging.getLogger(__name__)

# Output kept per stream; compiler queries and git errors fit easily.
_MAX_CAPTURE = 8000


class CommandRunner:
    """Run external commands and capture their results.

    Attributes:
        network_calls: Number of commands run with ``network=True``.
        history: Every command line executed, in order.
    """

    def __init__(self) -> None:
        self.network_calls = 0
        self.history: list[list[str]] = []

    def which(self, name: str, path: str | None = None) -> str | None:
        """Locate an executable on ``path`` (default: the inherited PATH)."""
        return shutil.which(name, path=path)

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: str | os.PathLike | None = None,
        env_overrides: Mapping[str, str] | None = None,
        timeout: int | None = None,
        network: bool = False,
        needs_sudo: bool = False,
        capture: bool = True,
    ) -> CommandResult:
        """Run ``cmd`` and return a CommandResult.

        Args:
            cmd: Command list for ``subprocess.run()``.
            cwd: Working directory.
            env_overrides: Variables layered over ``os.environ``.
            timeout: Seconds before the command is abandoned.
            network: The command transfers data over the network.
            needs_sudo: Prefix with ``sudo`` unless already root.
                Callers must have checked the operating mode first.
            capture: Capture stdout/stderr; when False the output goes
                straight to the terminal (long downloads and builds).

        Never raises for a failing command.
        """
        argv = [str(c) for c in cmd]
        if needs_sudo and os.geteuid() != 0:
            argv = ["sudo"] + argv

        env = os.environ.copy()
        if env_overrides:
            env.update(env_overrides)

        if network:
            self.network_calls += 1
        self.history.append(argv)
        logger.debug("Executing: %s (cwd=%s)", " ".join(argv), cwd)

        start = time.monotonic()
        try:
            proc = subprocess.run(
                argv,
                cwd=str(cwd) if cwd is not None else None,
                env=env,
                capture_output=capture,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(cmd=argv, returncode=-1, error=f"Command timed out ({timeout}s)")
        except OSError as e:
            return CommandResult(cmd=argv, returncode=-1, error=f"Cannot run {argv[0]}: {e}")

        elapsed_ms = int((time.monotonic() - start) * 1000)
        result = CommandResult(
            cmd=argv,
            returncode=proc.returncode,
            stdout=(proc.stdout or "")[-_MAX_CAPTURE:],
            stderr=(proc.stderr or "")[-_MAX_CAPTURE:],
            elapsed_ms=elapsed_ms,
        )
        if not result.ok:
            logger.debug("Command failed (%s): %s", result.describe(), " ".join(argv))
        return result
