"""
resolve-with-fallback — the shared "find, else repair, else provision" shape.

Used for the compiler binary (locate = probe list, repair = spec repair,
provision = download) and for the support file (locate = compiler
query, repair = SpecRepair).  Whatever a repair or provision step does,
success is only reported after ``locate`` confirms it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def resolve_with_fallback(
    locate: Callable[[], T | None],
    repair: Callable[[], bool] | None = None,
    provision: Callable[[], Any] | None = None,
    *,
    label: str = "",
) -> T | None:
    """Run the strategies in order until ``locate`` returns a value.

    Exceptions from ``provision`` propagate unchanged.
    """
    found = locate()
    if found is not None:
        return found

    if repair is not None:
        logger.debug("%s: trying repair", label or "resolve")
        if repair():
            found = locate()
            if found is not None:
                return found

    if provision is not None:
        logger.debug("%s: provisioning", label or "resolve")
        provision()
        found = locate()
        if found is None and repair is not None and repair():
            found = locate()

    return found
