"""
Core module for OpenIdea Search.

Provides:
- Unified exception hierarchy
- Async utilities (deadline-bounded fan-out, circuit breaker)
- Runtime settings
"""

from .async_utils import CircuitBreaker, gather_until_deadline, loop_deadline, remaining_seconds
from .config import MAX_PAGE_SIZE, SearchSettings, load_settings
from .exceptions import (
    # Base
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    OpenIdeaSearchError,
    # Caller errors
    InvalidParameterError,
    InvalidQueryError,
    ValidationError,
    # Provider failures
    NetworkError,
    ParseError,
    ProviderError,
    RateLimitError,
    ServiceUnavailableError,
    # Configuration / system
    ConfigurationError,
    SystemFault,
)

__all__ = [
    "CircuitBreaker",
    "ConfigurationError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "InvalidParameterError",
    "InvalidQueryError",
    "MAX_PAGE_SIZE",
    "NetworkError",
    "OpenIdeaSearchError",
    "ParseError",
    "ProviderError",
    "RateLimitError",
    "SearchSettings",
    "ServiceUnavailableError",
    "SystemFault",
    "ValidationError",
    "gather_until_deadline",
    "load_settings",
    "loop_deadline",
    "remaining_seconds",
]
