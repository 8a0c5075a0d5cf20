"""
CommandResult — the outcome of one external command.

Mirrors the receipt pattern: the runner never raises for a failing
command, the caller inspects ``ok`` and decides.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class CommandResult(BaseModel):
    """Captured result of a subprocess run."""

    cmd: list[str] = Field(default_factory=list)
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    elapsed_ms: int = 0
    error: str | None = None           # set when the command could not start

    @property
    def ok(self) -> bool:
        return self.error is None and self.returncode == 0

    @property
    def output(self) -> str:
        """Stripped stdout."""
        return self.stdout.strip()

    def describe(self) -> str:
        """Short failure description for messages."""
        if self.error:
            return self.error
        tail = (self.stderr or self.stdout).strip().splitlines()[-3:]
        detail = f": {' | '.join(tail)}" if tail else ""
        return f"exit {self.returncode}{detail}"
