"""
flowspine.core - errors, logging and settings shared by every layer.
"""

from flowspine.core.errors import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    CreateError,
    DependencyMissingError,
    ErrorCategory,
    ErrorContext,
    FlowSpineError,
    NetworkError,
    NotFoundError,
    ReadinessTimeoutError,
    RetriesExhaustedError,
    RevisionConflict,
    TopologyError,
)
from flowspine.core.logging import LogContext, configure_logging, get_logger

__all__ = [
    "ApiError",
    "AuthenticationError",
    "ConfigurationError",
    "CreateError",
    "DependencyMissingError",
    "ErrorCategory",
    "ErrorContext",
    "FlowSpineError",
    "NetworkError",
    "NotFoundError",
    "ReadinessTimeoutError",
    "RetriesExhaustedError",
    "RevisionConflict",
    "TopologyError",
    "LogContext",
    "configure_logging",
    "get_logger",
]
