"""
Structured error types for flow-spine.

Provides the typed error hierarchy used by the NiFi client, the retry
controller, the convergence engine and the CLI. Every error carries enough
metadata (resource kind, resource name, HTTP status, response body) for an
operator to reproduce a remote failure from the log line alone.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure the protocol can produce
    - **Explicit Retry Semantics:** Only revision conflicts are retryable
    - **Rich Context:** Errors carry the resource and HTTP details
    - **Error Chaining:** Transport exceptions are kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                      FlowSpineError                              │
        │  (category, retryable, context, cause)                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  TransientError     AuthError            ConfigError             │
        │  (retryable)        (AUTH)               (CONFIG)                │
        │       │                  │                    │                  │
        │  RevisionConflict   AuthenticationError  MissingConfigError      │
        │  NetworkError                            InvalidConfigError      │
        │                                                                  │
        │  ApiError           OrchestrationError   DatabaseError           │
        │  (http_status,body) (ORCHESTRATION)      (DATABASE)              │
        │       │                  │                    │                  │
        │  CreateError        TopologyError        MissingTableError       │
        │  ConfigurationError DependencyMissingError                       │
        │  NotFoundError      RetriesExhaustedError                        │
        │                     ReadinessTimeoutError                        │
        │                                          DatabaseConnectionError │
        │                                          ReplicationConfigError  │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = RevisionConflict(409, "not the most up-to-date revision")
    >>> error.retryable
    True
    >>> error = CreateError(400, "Processor type is invalid")
    >>> error.with_context(resource_kind="processor", resource_name="Read CDC Slot")
    CreateError('Create failed (HTTP 400)', category=SOURCE)
    >>> error.context.resource_name
    'Read CDC Slot'

Guardrails:
    ❌ DON'T: Raise bare Exception from the client or engine
    ✅ DO: Raise the matching FlowSpineError subclass

    ❌ DON'T: Treat ConfigurationError as retryable
    ✅ DO: Only retry RevisionConflict

Tags:
    error-handling, exception-hierarchy, retry-logic, nifi, optimistic-concurrency
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    # Infrastructure errors
    NETWORK = "NETWORK"           # Connection, timeout, readiness
    DATABASE = "DATABASE"         # PostgreSQL preflight

    # Remote API errors
    SOURCE = "SOURCE"             # Non-2xx responses, missing ids
    CONFLICT = "CONFLICT"         # Stale revision

    # Configuration errors (never retryable)
    CONFIG = "CONFIG"             # Missing or placeholder settings
    AUTH = "AUTH"                 # Token exchange

    # Application errors
    ORCHESTRATION = "ORCHESTRATION"  # Topology, dependencies, retries

    # Internal errors
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Only fields that are set end up in ``to_dict()``, so the same context
    type serves client-level errors (url, http_status, body) and
    engine-level errors (resource_kind, resource_name, step).

    Attributes:
        resource_kind: Kind of remote resource (``processor``, ``connection``...)
        resource_name: Name used as the find-or-create key
        resource_id: Remote (or synthetic) id when known
        step: Topology step key
        url: Request URL that failed
        http_status: HTTP status code if applicable
        body: Response body, verbatim
        metadata: Additional key-value pairs
    """

    resource_kind: str | None = None
    resource_name: str | None = None
    resource_id: str | None = None
    step: str | None = None

    url: str | None = None
    http_status: int | None = None
    body: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["resource_kind", "resource_name", "resource_id", "step",
                    "url", "http_status", "body"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class FlowSpineError(Exception):
    """
    Base exception for all flow-spine errors.

    Subclasses set ``default_category`` and ``default_retryable`` so call
    sites rarely pass them explicitly.

    Examples:
        >>> error = FlowSpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> FlowSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise CreateError(400, body).with_context(
                resource_kind="processor",
                resource_name="Read CDC Slot",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS
# =============================================================================


class TransientError(FlowSpineError):
    """Temporary error that may succeed on retry."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class NetworkError(TransientError):
    """Transport-level failure talking to the engine.

    Transient by nature, but the retry controller only absorbs revision
    conflicts, so a NetworkError ends the run.
    """

    default_category = ErrorCategory.NETWORK


class RevisionConflict(TransientError):
    """A write presented a stale revision; refetch and retry."""

    default_category = ErrorCategory.CONFLICT

    def __init__(self, http_status: int, body: str, **kwargs: Any):
        super().__init__(f"Revision conflict (HTTP {http_status})", **kwargs)
        self.http_status = http_status
        self.body = body
        self.context.http_status = http_status
        self.context.body = body


# =============================================================================
# REMOTE API ERRORS
# =============================================================================


class ApiError(FlowSpineError):
    """
    Non-successful response from the engine.

    Carries the HTTP status and the response body verbatim so a remote
    validation failure (e.g. a missing required property) can be diagnosed.
    """

    default_category = ErrorCategory.SOURCE
    default_retryable = False
    action = "Request"

    def __init__(self, http_status: int | None, body: str, message: str | None = None, **kwargs: Any):
        status = f"HTTP {http_status}" if http_status is not None else "no status"
        super().__init__(message or f"{self.action} failed ({status})", **kwargs)
        self.http_status = http_status
        self.body = body
        self.context.http_status = http_status
        self.context.body = body


class CreateError(ApiError):
    """Creating a resource failed."""

    action = "Create"


class ConfigurationError(ApiError):
    """A non-retryable configuration write failure."""

    action = "Configuration write"


class NotFoundError(ApiError):
    """The engine returned an absent or null id for a resource read."""

    action = "Lookup"

    def __init__(self, message: str, *, http_status: int | None = None, body: str = "", **kwargs: Any):
        super().__init__(http_status, body, message=message, **kwargs)


# =============================================================================
# AUTH / CONFIG ERRORS
# =============================================================================


class AuthError(FlowSpineError):
    """Authentication or authorization error."""

    default_category = ErrorCategory.AUTH
    default_retryable = False


class AuthenticationError(AuthError):
    """Credentials were rejected or the token response was empty."""


class ConfigError(FlowSpineError):
    """Configuration error. Never retryable."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """One or more required settings are empty."""

    def __init__(self, keys: list[str], message: str | None = None):
        self.keys = list(keys)
        super().__init__(message or f"Missing required settings: {', '.join(self.keys)}")


class InvalidConfigError(ConfigError):
    """One or more settings still hold a placeholder or an invalid value."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid value for {key}: {value!r}")


# =============================================================================
# ORCHESTRATION ERRORS
# =============================================================================


class OrchestrationError(FlowSpineError):
    """Convergence or preflight control-flow error."""

    default_category = ErrorCategory.ORCHESTRATION
    default_retryable = False


class TopologyError(OrchestrationError):
    """The desired topology description is inconsistent."""

    def __init__(self, issues: list[str]):
        self.issues = list(issues)
        super().__init__("Invalid topology: " + "; ".join(self.issues))


class DependencyMissingError(OrchestrationError):
    """A prerequisite resource has no resolved id, so the step was skipped."""

    def __init__(self, step: str, missing: list[str]):
        self.step = step
        self.missing = list(missing)
        super().__init__(
            f"Step '{step}' skipped: missing prerequisite(s) {', '.join(self.missing)}",
            context=ErrorContext(step=step),
        )


class RetriesExhaustedError(OrchestrationError):
    """Every attempt of a revisioned write hit a revision conflict."""

    def __init__(self, attempts: int, last_conflict: RevisionConflict | None = None):
        self.attempts = attempts
        self.last_conflict = last_conflict
        super().__init__(
            f"Exceeded retries after {attempts} attempt(s) on revision conflicts",
            cause=last_conflict,
        )
        if last_conflict is not None:
            self.context.http_status = last_conflict.http_status
            self.context.body = last_conflict.body


class ReadinessTimeoutError(OrchestrationError):
    """The engine never became reachable within the readiness budget."""

    default_category = ErrorCategory.NETWORK

    def __init__(self, attempts: int, elapsed_seconds: float):
        self.attempts = attempts
        self.elapsed_seconds = elapsed_seconds
        super().__init__(
            f"Engine not ready after {attempts} probe(s) ({elapsed_seconds:.1f}s elapsed)"
        )


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(FlowSpineError):
    """Database preflight error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class MissingTableError(DatabaseError):
    """A table the flow reads from does not exist."""

    def __init__(self, table: str, database: str | None = None):
        self.table = table
        where = f" in {database}" if database else ""
        super().__init__(f"Table '{table}' not found{where}")


class DatabaseConnectionError(DatabaseError):
    """The database could not be reached with the configured credentials."""


class ReplicationConfigError(DatabaseError):
    """The server is not set up for logical replication (wal_level, slots)."""


# =============================================================================
# HELPERS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check whether an exception is retryable."""
    if isinstance(error, FlowSpineError):
        return error.retryable
    return False


def categorize_error(error: Exception) -> ErrorCategory:
    """Return the category of an exception (INTERNAL for foreign ones)."""
    if isinstance(error, FlowSpineError):
        return error.category
    return ErrorCategory.INTERNAL


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "FlowSpineError",
    "TransientError",
    "NetworkError",
    "RevisionConflict",
    "ApiError",
    "CreateError",
    "ConfigurationError",
    "NotFoundError",
    "AuthError",
    "AuthenticationError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "OrchestrationError",
    "TopologyError",
    "DependencyMissingError",
    "RetriesExhaustedError",
    "ReadinessTimeoutError",
    "DatabaseError",
    "MissingTableError",
    "DatabaseConnectionError",
    "ReplicationConfigError",
    "is_retryable",
    "categorize_error",
]
