"""
Build directory manager — a writable output directory with no stale cache.

Steps, in order:

1. ``clean``: remove the requested directory if we can write to it;
   otherwise redirect to a fresh, timestamped fallback under the
   per-user cache root instead of failing on a permission error.
2. Prove the chosen directory is writable with a real write-and-delete
   probe (permission bits lie under some ACL setups).
3. If it is not, fall back to a stable per-repo directory under the
   cache root (a fresh timestamped one for clean runs); if that fails
   too, give up naming every path tried.
4. Read ``CMakeCache.txt`` files left by a previous run and delete
   exactly the stale ones: wrong SDK path, compilers pinned to the
   host's native toolchain, or a different CMake generator.

A directory the user chose explicitly is never swapped for a fallback.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from picobuild.core.errors import DirectoryUnwritable
from picobuild.core.models.build_dir import BuildDirectoryState
from picobuild.core.models.toolchain import TARGET_TRIPLE
from picobuild.core.persistence.cmake_cache import CACHE_FILE, nested_caches, read_cache

logger = logging.getLogger(__name__)

SDK_CACHE_KEY = "PICO_SDK_PATH"
COMPILER_CACHE_KEYS = ("CMAKE_C_COMPILER", "CMAKE_CXX_COMPILER", "CMAKE_ASM_COMPILER")
GENERATOR_CACHE_KEY = "CMAKE_GENERATOR"
# Sub-builds (pioasm, picotool) usually record the SDK only through these.
HOME_DIR_CACHE_KEY = "CMAKE_HOME_DIRECTORY"
SOURCE_DIR_SUFFIX = "_SOURCE_DIR"


def probe_writable(path: Path) -> bool:
    """Create ``path`` if needed, then write and delete a file in it."""
    try:
        path.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path, prefix=".picobuild_probe_", suffix=".tmp")
        os.close(fd)
        os.unlink(tmp)
    except OSError as e:
        logger.debug("Write probe failed for %s: %s", path, e)
        return False
    return True


def _same_path(a: str | Path, b: str | Path) -> bool:
    return Path(a).expanduser().resolve() == Path(b).expanduser().resolve()


class BuildDirectoryManager:
    """Resolve the output directory for one run.

    Args:
        cache_root: Per-user cache root; fallbacks live in ``<cache_root>/build``.
        sdk_path: SDK path of the current run, compared against cached ones.
        name: Prefix for fallback directory names (usually the repo name).
        generator: Generator this run will use; a cache made by another one is stale.
    """

    def __init__(
        self,
        cache_root: Path,
        sdk_path: Path,
        name: str = "build",
        generator: str | None = None,
    ) -> None:
        self.fallback_root = cache_root / "build"
        self.sdk_path = sdk_path
        self.name = name
        self.generator = generator

    def stable_fallback_path(self) -> Path:
        """Fallback reused run after run, so its cache survives between builds."""
        return self.fallback_root / self.name

    def fallback_path(self) -> Path:
        """A fallback directory name that no earlier fallback used."""
        stamp = datetime.now(UTC).strftime("%Y%m%d-%H%M%S-%f")
        candidate = self.fallback_root / f"{self.name}-{stamp}"
        n = 1
        while candidate.exists():
            candidate = self.fallback_root / f"{self.name}-{stamp}-{n}"
            n += 1
        return candidate

    def resolve(self, requested: Path, clean: bool = False, explicit: bool = False) -> BuildDirectoryState:
        """Return a verified-writable output directory.

        Raises:
            DirectoryUnwritable: No writable location could be found.
        """
        state = BuildDirectoryState(path=requested, requested=requested)
        target = requested

        # ── 1. Clean ────────────────────────────────────────────
        if clean and target.exists():
            if probe_writable(target):
                logger.info("Cleaning %s", target)
                try:
                    shutil.rmtree(target)
                    state.cleaned = True
                except OSError as e:
                    logger.warning("Cannot fully remove %s: %s", target, e)
                    target = self._redirect(state, target, explicit, f"cannot clean: {e}")
            else:
                target = self._redirect(state, target, explicit, "exists but is not writable")

        # ── 2/3. Write probe, one more fallback ─────────────────
        if not probe_writable(target):
            state.attempted.append(target)
            if explicit:
                raise DirectoryUnwritable(
                    f"Output directory {target} is not writable",
                    "Fix its permissions or pass a different --build-dir / BUILD_DIR.",
                )
            # Clean runs get a fresh directory; others reuse the stable one.
            fallback = self.fallback_path() if clean or state.redirected else self.stable_fallback_path()
            logger.warning("%s is not writable; falling back to %s", target, fallback)
            if not probe_writable(fallback):
                state.attempted.append(fallback)
                tried = ", ".join(str(p) for p in state.attempted)
                raise DirectoryUnwritable(
                    f"No writable build directory (tried {tried})",
                    "Fix permissions on one of these paths or set BUILD_DIR to a writable location.",
                )
            target = fallback
            state.redirected = True

        state.path = target
        state.writable = True

        # ── 4. Stale cache invalidation ─────────────────────────
        self.invalidate_stale(state)
        return state

    def _redirect(self, state: BuildDirectoryState, target: Path, explicit: bool, reason: str) -> Path:
        if explicit:
            raise DirectoryUnwritable(
                f"Cannot clean output directory {target}: {reason}",
                "Fix its ownership or pass a different --build-dir / BUILD_DIR.",
            )
        state.attempted.append(target)
        state.redirected = True
        fallback = self.fallback_path()
        logger.warning("%s %s; using %s instead", target, reason, fallback)
        return fallback

    def invalidate_stale(self, state: BuildDirectoryState) -> None:
        """Delete stale CMake caches under ``state.path``; record what was removed."""
        top = state.path / CACHE_FILE
        entries = read_cache(top)
        if entries is not None:
            state.cached_sdk_path = entries.get(SDK_CACHE_KEY) or None
            state.cached_compiler_forced = any(
                entries.get(key) and TARGET_TRIPLE not in entries[key]
                for key in COMPILER_CACHE_KEYS
            )
            if state.cached_sdk_path and not _same_path(state.cached_sdk_path, self.sdk_path):
                self._remove(state, top, f"SDK path changed ({state.cached_sdk_path} -> {self.sdk_path})")
            elif state.cached_compiler_forced:
                self._remove(state, top, "compilers pinned to the host toolchain")
            elif self.generator and entries.get(GENERATOR_CACHE_KEY, self.generator) != self.generator:
                # cmake refuses to reconfigure a tree made by another generator
                self._remove(state, top, f"generator changed ({entries[GENERATOR_CACHE_KEY]} -> {self.generator})")

        for nested in nested_caches(state.path):
            sub = read_cache(nested)
            foreign = self._foreign_sdk_reference(sub, state.cached_sdk_path) if sub else None
            if foreign:
                self._remove(state, nested, f"sub-build references {foreign}")

    def _foreign_sdk_reference(self, entries: dict[str, str], previous_sdk: str | None) -> str | None:
        """First value in a sub-build cache that points into an SDK other than the current one.

        ``PICO_SDK_PATH`` is compared directly.  ``CMAKE_HOME_DIRECTORY``
        and ``*_SOURCE_DIR`` values count when they lie under the SDK the
        top-level cache recorded, or under a directory named like the
        current SDK; paths inside the current SDK and project sources
        elsewhere are fine.
        """
        recorded = entries.get(SDK_CACHE_KEY)
        if recorded and not _same_path(recorded, self.sdk_path):
            return recorded

        current = Path(self.sdk_path).expanduser().resolve()
        sdk_names = {Path(self.sdk_path).name, current.name}
        previous = Path(previous_sdk).expanduser().resolve() if previous_sdk else None
        for key, value in entries.items():
            if not value or not (key == HOME_DIR_CACHE_KEY or key.endswith(SOURCE_DIR_SUFFIX)):
                continue
            path = Path(value).expanduser()
            if not path.is_absolute():
                continue
            resolved = path.resolve()
            if resolved == current or current in resolved.parents:
                continue
            if previous is not None and previous != current and (resolved == previous or previous in resolved.parents):
                return value
            if any(p.name in sdk_names for p in (path, *path.parents)):
                return value
        return None

    def _remove(self, state: BuildDirectoryState, path: Path, reason: str) -> None:
        logger.info("Removing stale %s: %s", path, reason)
        path.unlink(missing_ok=True)
        state.invalidated.append(path)
