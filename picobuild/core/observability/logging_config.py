"""
Logging configuration — set up once by the CLI entry point.

Every module does ``logger = logging.getLogger(__name__)`` and inherits
this config.  Levels are resolved in precedence order:

    --debug / --verbose / --quiet  >  PICOBUILD_LOG_LEVEL  >  WARNING

Optional file output via PICOBUILD_LOG_FILE / PICOBUILD_LOG_FILE_LEVEL.
Status lines meant for the user are printed by the CLI with click;
logging carries the diagnostic trail.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping

# ── Format strings ──────────────────────────────────────────────

# WARNING and above: the message only
_FMT_MINIMAL = "%(message)s"

# INFO: timestamp and logger name
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG and log files: level and file:line as well
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

ENV_LEVEL = "PICOBUILD_LOG_LEVEL"
ENV_FILE = "PICOBUILD_LOG_FILE"
ENV_FILE_LEVEL = "PICOBUILD_LOG_FILE_LEVEL"


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level name from CLI switches and the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = environ if environ is not None else {}
    return env.get(ENV_LEVEL, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        log_file_level: Level for the log file; defaults to ``level``.
    """
    numeric_level = _parse_level(level)

    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    effective_level = numeric_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_DEBUG, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name to its numeric constant (WARNING if unknown)."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
