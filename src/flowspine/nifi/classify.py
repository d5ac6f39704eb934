"""Classification of failed revisioned writes."""

from __future__ import annotations

from enum import Enum

CONFLICT_MARKER = "not the most up-to-date revision"


class WriteFailureKind(str, Enum):
    RETRYABLE = "RETRYABLE"
    FATAL = "FATAL"


def is_revision_conflict(status: int | None, body: str | None) -> bool:
    """True when the engine rejected a write for presenting a stale revision.

    The engine reports stale revisions either as HTTP 409 or, depending on
    version, as a 400 whose body carries the conflict message.
    """
    if status == 409:
        return True
    return bool(body) and CONFLICT_MARKER in body.lower()


def classify_write_failure(status: int | None, body: str | None) -> WriteFailureKind:
    """Decide whether a failed write should be refetched and retried.

    Examples:
        >>> classify_write_failure(400, "Node 1 is not the most up-to-date revision")
        <WriteFailureKind.RETRYABLE: 'RETRYABLE'>
        >>> classify_write_failure(400, "'Table Name' is invalid")
        <WriteFailureKind.FATAL: 'FATAL'>
    """
    if is_revision_conflict(status, body):
        return WriteFailureKind.RETRYABLE
    return WriteFailureKind.FATAL
