"""
Settings loader — merges flags, environment, picobuild.yml and defaults.

Precedence, highest first:

    CLI flag  >  environment variable  >  picobuild.yml  >  built-in default

The result is a validated ``BuildSettings`` that records where every
value came from.  Mode booleans are parsed here, once; nothing deeper in
the call graph reads the environment again.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from picobuild.core.errors import ConfigError
from picobuild.core.models.settings import BuildSettings

logger = logging.getLogger(__name__)

CONFIG_FILE = "picobuild.yml"

# setting name → environment variable
ENV_VARS: dict[str, str] = {
    "repo_root": "PICOBUILD_REPO_ROOT",
    "sdk_path": "PICO_SDK_PATH",
    "extras_path": "PICO_EXTRAS_PATH",
    "board": "PICO_BOARD",
    "build_type": "BUILD_TYPE",
    "generator": "GENERATOR",
    "toolchain_dir": "ARM_GNU_DIR",
    "toolchain_url": "ARM_GNU_URL",
    "toolchain_version": "ARM_GNU_VERSION",
    "build_dir": "BUILD_DIR",
    "cache_root": "PICOBUILD_CACHE_DIR",
    "fast": "FAST",
    "offline": "OFFLINE",
    "no_sudo": "NO_SUDO",
}

_PATH_SETTINGS = {"sdk_path", "extras_path", "toolchain_dir", "build_dir", "cache_root"}
_BOOL_SETTINGS = {"fast", "offline", "no_sudo", "clean", "no_copy"}
_FILE_KEYS = (
    set(ENV_VARS) - {"repo_root"}
) | {"target", "clean", "no_copy"}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def parse_bool(name: str, raw: Any) -> bool:
    """Parse a loosely-typed boolean (env string or YAML scalar)."""
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(
        f"Invalid boolean for {name}: {raw!r}",
        "Use one of 1/0, true/false, yes/no, on/off.",
    )


def find_repo_root(start_dir: Path | None = None) -> Path:
    """Walk up from ``start_dir`` looking for picobuild.yml.

    Falls back to ``start_dir`` itself when no config file is found.
    """
    start = (start_dir or Path.cwd()).resolve()
    current = start
    for _ in range(20):  # safety limit
        if (current / CONFIG_FILE).is_file():
            return current
        parent = current.parent
        if parent == current:
            break
        current = parent
    return start


def load_config_file(repo_root: Path) -> dict[str, Any]:
    """Read ``<repo_root>/picobuild.yml`` if present.

    The file may be flat or wrap its keys under ``picobuild:``.

    Raises:
        ConfigError: On unreadable files, invalid YAML or unknown keys.
    """
    path = repo_root / CONFIG_FILE
    if not path.is_file():
        return {}

    logger.debug("Loading settings from %s", path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", "Fix the syntax or delete the file.") from e

    if data is None:
        return {}
    if isinstance(data, dict) and isinstance(data.get("picobuild"), dict):
        data = data["picobuild"]
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    unknown = sorted(set(data) - _FILE_KEYS)
    if unknown:
        raise ConfigError(
            f"Unknown keys in {path}: {', '.join(unknown)}",
            f"Valid keys: {', '.join(sorted(_FILE_KEYS))}",
        )
    return data


def load_settings(
    flags: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    *,
    home: Path | None = None,
    cwd: Path | None = None,
) -> BuildSettings:
    """Resolve every setting of a run.

    Args:
        flags: CLI values keyed by setting name.  ``None`` (and ``False``
            for boolean switches) means "not given".
        environ: Environment mapping (default: ``os.environ``).
        home: Home directory used for defaults (default: ``Path.home()``).
        cwd: Directory relative paths are resolved against.

    Raises:
        ConfigError: If any layer holds an invalid value.
    """
    flags = dict(flags or {})
    env = os.environ if environ is None else environ
    home = home or Path.home()
    cwd = cwd or Path.cwd()

    values: dict[str, Any] = {}
    sources: dict[str, str] = {}

    def _given(name: str, raw: Any) -> bool:
        if raw is None:
            return False
        if name in _BOOL_SETTINGS and raw is False:
            return False
        return True

    def _path(raw: Any, base: Path) -> Path:
        p = Path(os.path.expanduser(str(raw)))
        return p if p.is_absolute() else base / p

    # ── Repo root first: it locates picobuild.yml ────────────────
    if _given("repo_root", flags.get("repo_root")):
        repo_root, sources["repo_root"] = _path(flags["repo_root"], cwd), "flag"
    elif env.get(ENV_VARS["repo_root"]):
        repo_root, sources["repo_root"] = _path(env[ENV_VARS["repo_root"]], cwd), "env"
    else:
        repo_root, sources["repo_root"] = find_repo_root(cwd), "default"
    repo_root = repo_root.resolve()
    values["repo_root"] = repo_root

    file_data = load_config_file(repo_root)

    defaults: dict[str, Any] = {
        "sdk_path": home / "pico-sdk",
        "extras_path": home / "pico-extras",
        "board": "pico2",
        "build_type": "Debug",
        "generator": None,
        "toolchain_dir": home / "arm-gnu-toolchain",
        "toolchain_url": None,
        "toolchain_version": "13.2.rel1",
        "build_dir": repo_root / "build",
        "cache_root": home / ".cache" / "picobuild",
        "fast": False,
        "offline": False,
        "no_sudo": False,
        "clean": False,
        "target": None,
        "no_copy": False,
    }

    for name, default in defaults.items():
        env_name = ENV_VARS.get(name)
        if _given(name, flags.get(name)):
            raw, source, base = flags[name], "flag", cwd
        elif env_name and env.get(env_name, "") != "":
            raw, source, base = env[env_name], "env", cwd
        elif name in file_data and file_data[name] is not None:
            raw, source, base = file_data[name], "file", repo_root
        else:
            values[name] = default
            sources[name] = "default"
            continue

        if name in _PATH_SETTINGS:
            raw = _path(raw, base)
        elif name in _BOOL_SETTINGS:
            raw = parse_bool(env_name or name, raw)
        else:
            raw = str(raw)
        values[name] = raw
        sources[name] = source

    try:
        settings = BuildSettings(**values, sources=sources)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or "settings"
        raise ConfigError(
            f"Invalid value for {field}: {first.get('msg', e)}",
            f"Check the --{field.replace('_', '-')} flag, "
            f"{ENV_VARS.get(field, field)} or {CONFIG_FILE}.",
        ) from e

    logger.debug(
        "Settings: sdk=%s extras=%s board=%s type=%s build_dir=%s",
        settings.sdk_path, settings.extras_path, settings.board,
        settings.build_type, settings.build_dir,
    )
    return settings
