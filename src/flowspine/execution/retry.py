"""Retry controller for revisioned writes.

A revisioned write is fetch-then-write: the revision presented on the write
is always the one returned by the fetch immediately before it. When the
engine answers with a revision conflict, the controller waits a fixed delay,
refetches and writes again. Any other failure ends the loop at once.

Example:
    >>> outcome = configure_with_retry(client, ResourceKind.PROCESSOR, proc_id,
    ...                                {"config": {...}}, sleep=lambda _: None)
    >>> outcome.status, outcome.attempts, outcome.fetches
    (<WriteStatus.SUCCEEDED: 'SUCCEEDED'>, 2, 2)
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from flowspine.core.errors import (
    ApiError,
    ConfigurationError,
    FlowSpineError,
    RetriesExhaustedError,
    RevisionConflict,
)
from flowspine.core.logging import get_logger
from flowspine.nifi.models import FetchedResource, ResourceId, ResourceKind, Revision

if TYPE_CHECKING:
    from flowspine.nifi.client import RevisionedResourceClient

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_DELAY = 1.0


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Delay in seconds before the attempt after ``attempt`` (1-based)."""
        ...

    @abstractmethod
    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """True if another attempt may follow attempt number ``attempt``."""
        ...


@dataclass
class ConstantBackoff(RetryStrategy):
    """Fixed delay between attempts, bounded by ``max_attempts`` in total."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    delay: float = DEFAULT_DELAY

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def next_delay(self, attempt: int) -> float:
        return self.delay

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        if error is not None and not isinstance(error, RevisionConflict):
            return False
        return attempt < self.max_attempts


class WriteStatus(str, Enum):
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    EXHAUSTED = "EXHAUSTED"


@dataclass
class WriteOutcome:
    """Result of a revisioned write loop.

    Attributes:
        status: SUCCEEDED, FAILED (non-retryable) or EXHAUSTED (conflicts only)
        attempts: Write attempts made
        fetches: Revision fetches made; equals ``attempts`` unless a fetch failed
        revision: Revision after the last accepted write
        http_status: Status of the last failed response, verbatim
        body: Body of the last failed response, verbatim
        error: The error that ended the loop
    """

    status: WriteStatus
    attempts: int = 0
    fetches: int = 0
    revision: Revision | None = None
    http_status: int | None = None
    body: str | None = None
    error: FlowSpineError | None = None
    conflicts: list[RevisionConflict] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is WriteStatus.SUCCEEDED

    def raise_for_status(self) -> None:
        """Raise the typed error for a failed outcome; no-op on success."""
        if self.status is WriteStatus.SUCCEEDED:
            return
        if self.error is not None:
            raise self.error
        if self.status is WriteStatus.EXHAUSTED:
            raise RetriesExhaustedError(
                self.attempts, self.conflicts[-1] if self.conflicts else None
            )
        raise ConfigurationError(self.http_status, self.body or "")


@dataclass
class RetryContext:
    """Per-loop retry state."""

    strategy: RetryStrategy
    sleep: Callable[[float], None] = time.sleep
    attempt: int = field(default=0, init=False)
    last_error: Exception | None = field(default=None, init=False)

    def record_failure(self, error: Exception) -> None:
        self.last_error = error

    def should_retry(self) -> bool:
        return self.strategy.should_retry(self.attempt, self.last_error)

    def wait(self) -> None:
        self.sleep(self.strategy.next_delay(self.attempt))


WriteCall = Callable[[FetchedResource], Revision]


def retry_revisioned_write(
    client: RevisionedResourceClient,
    kind: ResourceKind,
    resource_id: ResourceId,
    write: WriteCall,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delay: float = DEFAULT_DELAY,
    sleep: Callable[[float], None] = time.sleep,
    label: str | None = None,
) -> WriteOutcome:
    """Fetch-then-write loop absorbing revision conflicts.

    ``write`` receives the freshly fetched resource and must present
    ``fetched.revision`` verbatim. Only ``RevisionConflict`` is retried;
    an ``ApiError`` ends the loop with status FAILED. Transport and auth
    errors propagate to the caller. The delay is slept only when another
    attempt will follow.
    """
    ctx = RetryContext(ConstantBackoff(max_attempts=max_attempts, delay=delay), sleep=sleep)
    outcome = WriteOutcome(status=WriteStatus.FAILED)
    name = label or str(resource_id)

    while True:
        try:
            fetched = client.fetch_resource(kind, resource_id)
        except ApiError as exc:
            logger.error("write.fetch_failed", kind=kind.value, name=name, error=exc.message)
            outcome.error = exc
            outcome.http_status = exc.http_status
            outcome.body = exc.body
            return outcome
        outcome.fetches += 1

        ctx.attempt += 1
        outcome.attempts = ctx.attempt
        try:
            outcome.revision = write(fetched)
        except RevisionConflict as exc:
            ctx.record_failure(exc)
            outcome.conflicts.append(exc)
            outcome.http_status = exc.http_status
            outcome.body = exc.body
            if not ctx.should_retry():
                logger.error(
                    "write.exhausted", kind=kind.value, name=name, attempts=ctx.attempt
                )
                outcome.status = WriteStatus.EXHAUSTED
                outcome.error = RetriesExhaustedError(ctx.attempt, exc).with_context(
                    resource_kind=kind.value, resource_name=name
                )
                return outcome
            logger.warning(
                "write.conflict",
                kind=kind.value,
                name=name,
                attempt=ctx.attempt,
                max_attempts=max_attempts,
            )
            ctx.wait()
            continue
        except ApiError as exc:
            logger.error(
                "write.failed",
                kind=kind.value,
                name=name,
                http_status=exc.http_status,
                body=exc.body,
            )
            outcome.error = exc
            outcome.http_status = exc.http_status
            outcome.body = exc.body
            return outcome

        outcome.status = WriteStatus.SUCCEEDED
        outcome.http_status = None
        outcome.body = None
        logger.debug("write.succeeded", kind=kind.value, name=name, attempts=ctx.attempt)
        return outcome


def configure_with_retry(
    client: RevisionedResourceClient,
    kind: ResourceKind,
    resource_id: ResourceId,
    component: dict[str, Any],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delay: float = DEFAULT_DELAY,
    sleep: Callable[[float], None] = time.sleep,
    label: str | None = None,
) -> WriteOutcome:
    """Apply ``component`` to an existing resource, retrying on revision conflicts."""

    def write(fetched: FetchedResource) -> Revision:
        return client.write_resource(kind, resource_id, fetched.revision, component)

    return retry_revisioned_write(
        client,
        kind,
        resource_id,
        write,
        max_attempts=max_attempts,
        delay=delay,
        sleep=sleep,
        label=label,
    )


__all__ = [
    "RetryStrategy",
    "ConstantBackoff",
    "RetryContext",
    "WriteStatus",
    "WriteOutcome",
    "retry_revisioned_write",
    "configure_with_retry",
]
