"""Execution primitives: the revisioned-write retry controller and the readiness gate."""

from flowspine.execution.readiness import ReadinessResult, wait_until_ready
from flowspine.execution.retry import (
    ConstantBackoff,
    RetryContext,
    RetryStrategy,
    WriteOutcome,
    WriteStatus,
    configure_with_retry,
    retry_revisioned_write,
)

__all__ = [
    "ConstantBackoff",
    "ReadinessResult",
    "RetryContext",
    "RetryStrategy",
    "WriteOutcome",
    "WriteStatus",
    "configure_with_retry",
    "retry_revisioned_write",
    "wait_until_ready",
]
