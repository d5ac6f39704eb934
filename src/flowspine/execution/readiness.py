"""Readiness gate: wait for the engine's API before anything else runs.

The engine takes minutes to boot inside a container. ``wait_until_ready``
polls an unauthenticated probe a bounded number of times and either
returns or raises ``ReadinessTimeoutError``; it never waits forever.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from flowspine.core.errors import ReadinessTimeoutError
from flowspine.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_INTERVAL_SECONDS = 5.0


@dataclass(frozen=True)
class ReadinessResult:
    attempts: int
    elapsed_seconds: float
    skipped: bool = False


def wait_until_ready(
    probe: Callable[[], bool],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    *,
    dry_run: bool = False,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> ReadinessResult:
    """Poll ``probe`` until it returns True.

    Sleeps ``interval_seconds`` between consecutive probes, so a run that
    never succeeds makes ``max_attempts`` probes and ``max_attempts - 1``
    sleeps. Dry-run returns at once without probing.

    Raises:
        ReadinessTimeoutError: every probe failed
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    if dry_run:
        logger.info("readiness.skipped", reason="dry_run")
        return ReadinessResult(attempts=0, elapsed_seconds=0.0, skipped=True)

    started = clock()
    for attempt in range(1, max_attempts + 1):
        if probe():
            elapsed = clock() - started
            logger.info("readiness.ready", attempts=attempt, elapsed_seconds=round(elapsed, 3))
            return ReadinessResult(attempts=attempt, elapsed_seconds=elapsed)
        if attempt < max_attempts:
            logger.debug("readiness.waiting", attempt=attempt, max_attempts=max_attempts)
            sleep(interval_seconds)

    elapsed = clock() - started
    logger.error("readiness.timeout", attempts=max_attempts, elapsed_seconds=round(elapsed, 3))
    raise ReadinessTimeoutError(max_attempts, elapsed)
