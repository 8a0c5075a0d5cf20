"""
Host detection — OS family, architecture and the user behind sudo.

``detect_host()`` runs once at startup.  When picobuild runs under sudo,
defaults such as ``~/pico-sdk`` would otherwise point into root's home;
``rehome_defaults()`` moves those (and only those still at their
built-in default) back under the invoking user's home.
"""

from __future__ import annotations

import logging
import os
import platform
import pwd
from collections.abc import Mapping
from pathlib import Path

from picobuild.core.errors import UnsupportedHost
from picobuild.core.models.host import HostProfile, OsFamily
from picobuild.core.models.settings import HOME_PATH_SETTINGS, BuildSettings

logger = logging.getLogger(__name__)

# Lowercased kernel-name prefix → OS family.
_OS_PREFIXES: tuple[tuple[str, OsFamily], ...] = (
    ("darwin", "mac"),
    ("linux", "linux"),
)


def classify_os(kernel: str) -> OsFamily:
    kernel = kernel.lower()
    for prefix, family in _OS_PREFIXES:
        if kernel.startswith(prefix):
            return family
    return "other"


def _lookup_home(user: str) -> Path | None:
    try:
        return Path(pwd.getpwnam(user).pw_dir)
    except KeyError:
        return None


def detect_host(
    *,
    system: str | None = None,
    machine: str | None = None,
    euid: int | None = None,
    environ: Mapping[str, str] | None = None,
) -> HostProfile:
    """Detect the host profile.

    Every argument overrides one probe; by default the running
    interpreter's platform, effective uid and environment are used.
    """
    kernel = (system if system is not None else platform.system()).lower()
    arch = machine if machine is not None else platform.machine()
    uid = euid if euid is not None else os.geteuid()
    env = os.environ if environ is None else environ

    is_privileged = uid == 0
    real_user = None
    real_home = None
    if is_privileged:
        sudo_user = env.get("SUDO_USER", "")
        if sudo_user and sudo_user != "root":
            real_user = sudo_user
            real_home = _lookup_home(sudo_user)
            if real_home is None:
                logger.warning("SUDO_USER=%s has no passwd entry; keeping root's home", sudo_user)
    else:
        real_user = env.get("USER") or env.get("LOGNAME") or None

    profile = HostProfile(
        os_family=classify_os(kernel),
        kernel=kernel,
        arch=arch,
        is_privileged=is_privileged,
        real_user=real_user,
        real_user_home=real_home,
    )
    logger.info(
        "Host: %s (%s/%s) privileged=%s real_home=%s",
        profile.os_family, kernel, arch, is_privileged, real_home,
    )
    return profile


def require_supported_host(profile: HostProfile) -> None:
    """Raise UnsupportedHost unless the host is macOS or Linux."""
    if profile.os_family == "other":
        raise UnsupportedHost(
            f"Unsupported OS: {profile.kernel or 'unknown'}",
            "picobuild supports macOS and Linux (Ubuntu/Debian tested).",
        )


def rehome_defaults(
    settings: BuildSettings,
    profile: HostProfile,
    privileged_home: Path | None = None,
) -> BuildSettings:
    """Move default paths from the privileged home to the real user's home.

    Only settings whose source is ``default`` and whose value lies under
    ``privileged_home`` are rewritten.  Returns a new BuildSettings.
    """
    if not profile.is_privileged or profile.real_user_home is None:
        return settings

    priv_home = Path(os.path.abspath(privileged_home or Path.home()))
    real_home = profile.real_user_home
    if priv_home == Path(os.path.abspath(real_home)):
        return settings

    updates: dict[str, Path] = {}
    for name in HOME_PATH_SETTINGS:
        if not settings.is_default(name):
            continue
        value: Path = getattr(settings, name)
        try:
            rel = Path(os.path.abspath(value)).relative_to(priv_home)
        except ValueError:
            continue
        updates[name] = real_home / rel
        logger.info("Rehomed default %s: %s -> %s", name, value, updates[name])

    return settings.model_copy(update=updates) if updates else settings
