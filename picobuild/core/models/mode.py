"""
OperatingMode — the single, resolved answer to "what may this run do?"

Constructed once by ``resolve_mode()`` and passed by value to every
component.  Nothing downstream re-reads raw flags or environment.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from picobuild.core.errors import ModeViolation


class OperatingMode(BaseModel):
    """Resolved mode flags plus the permissions they imply."""

    model_config = ConfigDict(frozen=True)

    fast: bool = False
    offline: bool = False
    no_sudo: bool = False

    network_allowed: bool = True
    privilege_allowed: bool = True
    install_allowed: bool = True

    @property
    def label(self) -> str:
        """Human-readable mode name."""
        if self.offline:
            return "offline"
        if self.fast:
            return "fast"
        if self.no_sudo:
            return "no-sudo"
        return "normal"

    def require_network(self, operation: str) -> None:
        """Raise ModeViolation unless network access is allowed."""
        if not self.network_allowed:
            raise ModeViolation(
                f"{operation} needs network access, which {self.label} mode forbids",
                "Re-run without --fast/--offline, or provide the dependency locally.",
            )

    def require_privilege(self, operation: str) -> None:
        """Raise ModeViolation unless privilege elevation is allowed."""
        if not self.privilege_allowed:
            raise ModeViolation(
                f"{operation} needs elevated privileges, which {self.label} mode forbids",
                "Re-run without --no-sudo/--fast, or choose a location you can write to.",
            )
