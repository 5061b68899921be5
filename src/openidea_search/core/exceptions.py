"""
Unified Exception Hierarchy for OpenIdea Search.

Errors fall into three request-level categories:

- Caller errors: bad query parameters, reported immediately (HTTP 400).
- Provider failures: adapter timeout/error/malformed response. These never
  cross the adapter boundary as exceptions; they are converted into
  ``AdapterOutcome`` data (status=error) and coverage zeros.
- System faults: anything else that escapes the facade (HTTP 500).

Exception Hierarchy:
    OpenIdeaSearchError (base)
    ├── ValidationError
    │   ├── InvalidQueryError
    │   └── InvalidParameterError
    ├── ProviderError
    │   ├── RateLimitError
    │   ├── NetworkError
    │   ├── ServiceUnavailableError
    │   └── ParseError
    ├── ConfigurationError
    └── SystemFault
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    WARNING = auto()  # Recoverable, can continue
    ERROR = auto()  # Failed but can retry
    CRITICAL = auto()  # Cannot continue
    TRANSIENT = auto()  # Temporary, should retry automatically


class ErrorCategory(Enum):
    """Categories for error classification."""

    CALLER = "caller"
    PROVIDER = "provider"
    SYSTEM = "system"
    CONFIGURATION = "config"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Rich context for error messages."""

    operation: str | None = None
    provider: str | None = None
    input_value: Any = None
    suggestion: str | None = None
    retry_after: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def replace(self, **changes: Any) -> ErrorContext:
        """Return a copy with the given fields replaced."""
        values = {
            "operation": self.operation,
            "provider": self.provider,
            "input_value": self.input_value,
            "suggestion": self.suggestion,
            "retry_after": self.retry_after,
            "metadata": self.metadata,
        }
        values.update(changes)
        return ErrorContext(**values)


class OpenIdeaSearchError(Exception):
    """
    Base exception for all OpenIdea Search errors.

    Provides:
    - Structured error context
    - Severity classification
    - Retry guidance
    - JSON-friendly formatting for the HTTP error body
    """

    __slots__ = ("category", "context", "retryable", "severity")

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "error": str(self),
            "category": self.category.value,
        }
        if self.context.suggestion:
            result["suggestion"] = self.context.suggestion
        if self.context.retry_after:
            result["retry_after_seconds"] = self.context.retry_after
        return result


# =============================================================================
# Caller Errors
# =============================================================================


class ValidationError(OpenIdeaSearchError):
    """Base class for caller errors (invalid request parameters)."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.CALLER,
            retryable=False,
        )


class InvalidQueryError(ValidationError):
    """Raised when the search text is missing or blank."""

    def __init__(
        self,
        query: str | None,
        reason: str = "Query cannot be empty",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = (context or ErrorContext()).replace(
            input_value=query,
            suggestion="Provide a non-empty 'q' parameter, e.g. q=climate+model",
        )
        super().__init__(f"Invalid query: {reason}", context=ctx)


class InvalidParameterError(ValidationError):
    """Raised when a parameter value is invalid."""

    def __init__(
        self,
        param_name: str,
        value: Any,
        expected: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = (context or ErrorContext()).replace(
            input_value=value,
            suggestion=f"Expected {expected}",
        )
        super().__init__(
            f"Invalid parameter '{param_name}': {value!r} (expected {expected})",
            context=ctx,
        )
        self.param_name = param_name


# =============================================================================
# Provider Failures
# =============================================================================


class ProviderError(OpenIdeaSearchError):
    """Base class for failures talking to an external provider."""

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        context: ErrorContext | None = None,
        retryable: bool = True,
    ) -> None:
        ctx = context or ErrorContext()
        if provider:
            ctx = ctx.replace(provider=provider)
            message = f"{provider}: {message}"
        super().__init__(
            message,
            context=ctx,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.PROVIDER,
            retryable=retryable,
        )


class RateLimitError(ProviderError):
    """Raised when a provider rate limit is exceeded or a circuit is open."""

    def __init__(
        self,
        message: str = "API rate limit exceeded",
        *,
        provider: str | None = None,
        retry_after: float = 1.0,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = (context or ErrorContext()).replace(
            suggestion="Wait and retry the request",
            retry_after=retry_after,
        )
        super().__init__(message, provider=provider, context=ctx, retryable=True)
        self.severity = ErrorSeverity.TRANSIENT


class NetworkError(ProviderError):
    """Raised for network connectivity issues."""

    def __init__(
        self,
        message: str = "Network connection failed",
        *,
        provider: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message, provider=provider, context=context, retryable=True)


class ServiceUnavailableError(ProviderError):
    """Raised when a provider answers with a non-success HTTP status."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        *,
        provider: str | None = None,
        status_code: int | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            provider=provider,
            context=context,
            retryable=status_code is None or status_code >= 500,
        )
        self.status_code = status_code
        self.severity = ErrorSeverity.TRANSIENT


class ParseError(ProviderError):
    """Raised when a provider payload cannot be mapped to the result schema."""

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(f"Parse error: {message}", provider=provider, context=context, retryable=False)


# =============================================================================
# Configuration / System
# =============================================================================


class ConfigurationError(OpenIdeaSearchError):
    """Raised for invalid settings or provider registry definitions."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )


class SystemFault(OpenIdeaSearchError):
    """Raised for unexpected failures inside the aggregator itself."""

    def __init__(
        self,
        message: str = "internal error",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.SYSTEM,
            retryable=False,
        )


# =============================================================================
# Utilities
# =============================================================================


def is_retryable_error(error: Exception) -> bool:
    """Check if an error should be retried."""
    if isinstance(error, OpenIdeaSearchError):
        return error.retryable

    error_str = str(error).lower()
    transient_patterns = [
        "rate limit",
        "too many requests",
        "temporarily unavailable",
        "service unavailable",
        "connection reset",
        "timeout",
    ]
    return any(pattern in error_str for pattern in transient_patterns)


def get_retry_delay(error: Exception, attempt: int, cap: float = 30.0) -> float:
    """
    Calculate retry delay with exponential backoff.

    Args:
        error: The exception that occurred
        attempt: Current attempt number (0-based)
        cap: Upper bound for the returned delay

    Returns:
        Delay in seconds before next retry
    """
    base_delay = 0.5

    if isinstance(error, OpenIdeaSearchError) and error.context.retry_after:
        base_delay = error.context.retry_after

    delay = base_delay * (2**attempt)
    jitter = random.uniform(0, 0.1 * delay)
    return min(delay + jitter, cap)
