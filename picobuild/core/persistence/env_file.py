"""
Generated ``.env`` — resolved SDK/board paths for other tooling.

Written once.  An existing file belongs to the user and is never
overwritten.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

from picobuild.core.models.settings import BuildSettings

logger = logging.getLogger(__name__)

ENV_FILE = ".env"


def render_env(settings: BuildSettings) -> str:
    return (
        "# Auto-generated by picobuild\n"
        f"export PICO_SDK_PATH={shlex.quote(str(settings.sdk_path))}\n"
        f"export PICO_EXTRAS_PATH={shlex.quote(str(settings.extras_path))}\n"
        f"export PICO_BOARD={shlex.quote(settings.board)}\n"
    )


def write_env_file(repo_root: Path, settings: BuildSettings) -> bool:
    """Write ``<repo_root>/.env`` if absent.  Returns True if it was written."""
    path = repo_root / ENV_FILE
    if path.exists():
        logger.info("✔ %s already exists", path)
        return False
    try:
        path.write_text(render_env(settings), encoding="utf-8")
    except OSError as e:
        # Convenience output only; the build does not read it.
        logger.warning("Cannot write %s: %s", path, e)
        return False
    logger.info("Wrote %s", path)
    return True
