"""
Mode resolution — turns the three mode switches into one OperatingMode.

Implication rules:
    offline  ⇒ fast
    fast     ⇒ no_sudo, no network, no installs
    no_sudo  ⇒ no privilege elevation
"""

from __future__ import annotations

from picobuild.core.models.mode import OperatingMode


def resolve_mode(fast: bool = False, offline: bool = False, no_sudo: bool = False) -> OperatingMode:
    """Resolve the effective operating mode.  Pure: no I/O, never fails."""
    fast = bool(fast or offline)
    no_sudo = bool(no_sudo or fast)
    return OperatingMode(
        fast=fast,
        offline=bool(offline),
        no_sudo=no_sudo,
        network_allowed=not fast,
        install_allowed=not fast,
        privilege_allowed=not no_sudo,
    )
