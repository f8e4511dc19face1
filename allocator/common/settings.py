"""Environment-driven defaults for optimizer runs."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

_TRUTHY = {"1", "true", "yes", "on"}


@lru_cache(maxsize=None)
def get_logging_verbosity() -> str:
    """Return the configured verbosity for console rendering and evolution logs."""

    return os.getenv("ALLOCATOR_LOG_VERBOSITY", "info").lower()


@lru_cache(maxsize=None)
def get_parallel_workers() -> Optional[int]:
    """Return the default fitness worker count, or None to use every CPU core.

    Only consulted when ``GeneticAlgorithmConfig.parallel_workers`` is unset.
    Values that are not positive integers are ignored.
    """

    raw = os.getenv("ALLOCATOR_PARALLEL_WORKERS")
    if not raw:
        return None
    try:
        workers = int(raw)
    except ValueError:
        return None
    return workers if workers > 0 else None


@lru_cache(maxsize=None)
def evolution_logging_enabled() -> bool:
    return os.getenv("ALLOCATOR_EVOLUTION_LOGGING", "1").lower() in _TRUTHY


__all__ = [
    "get_logging_verbosity",
    "get_parallel_workers",
    "evolution_logging_enabled",
]
