"""Tests for the exception hierarchy and retry helpers."""

import pytest

from openidea_search.core.exceptions import (
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    InvalidParameterError,
    InvalidQueryError,
    NetworkError,
    OpenIdeaSearchError,
    ParseError,
    ProviderError,
    RateLimitError,
    ServiceUnavailableError,
    SystemFault,
    ValidationError,
    get_retry_delay,
    is_retryable_error,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc",
        [
            InvalidQueryError(""),
            InvalidParameterError("page", 0, "an integer >= 1"),
        ],
    )
    def test_caller_errors(self, exc):
        assert isinstance(exc, ValidationError)
        assert isinstance(exc, OpenIdeaSearchError)
        assert exc.category is ErrorCategory.CALLER
        assert exc.retryable is False

    @pytest.mark.parametrize(
        "exc",
        [
            RateLimitError(provider="github"),
            NetworkError(provider="github"),
            ServiceUnavailableError(provider="github", status_code=503),
            ParseError("bad payload", provider="github"),
        ],
    )
    def test_provider_errors(self, exc):
        assert isinstance(exc, ProviderError)
        assert exc.category is ErrorCategory.PROVIDER
        assert str(exc).startswith("github: ")
        assert exc.context.provider == "github"

    def test_system_fault_message(self):
        assert str(SystemFault()) == "internal error"
        assert SystemFault().category is ErrorCategory.SYSTEM

    def test_configuration_error(self):
        exc = ConfigurationError("bad")
        assert exc.category is ErrorCategory.CONFIGURATION
        assert not isinstance(exc, ValidationError)


class TestMessages:
    def test_invalid_parameter_message(self):
        exc = InvalidParameterError("type", "podcast", "all|paper")
        assert "type" in str(exc)
        assert "'podcast'" in str(exc)
        assert exc.param_name == "type"
        assert exc.context.suggestion == "Expected all|paper"

    def test_invalid_query_to_dict(self):
        data = InvalidQueryError("   ").to_dict()
        assert data["error"] == "Invalid query: Query cannot be empty"
        assert data["category"] == "caller"
        assert "suggestion" in data

    def test_rate_limit_retry_after(self):
        exc = RateLimitError(retry_after=3.0)
        assert exc.to_dict()["retry_after_seconds"] == 3.0

    def test_parse_error_prefix(self):
        assert str(ParseError("oops")) == "Parse error: oops"

    def test_service_unavailable_retryable_by_status(self):
        assert ServiceUnavailableError(status_code=503).retryable is True
        assert ServiceUnavailableError(status_code=403).retryable is False
        assert ServiceUnavailableError(status_code=403).status_code == 403


class TestErrorContext:
    def test_replace_keeps_other_fields(self):
        ctx = ErrorContext(operation="search", provider="arxiv")
        updated = ctx.replace(suggestion="retry")
        assert updated.operation == "search"
        assert updated.provider == "arxiv"
        assert updated.suggestion == "retry"
        assert ctx.suggestion is None


class TestRetryHelpers:
    def test_is_retryable_for_own_errors(self):
        assert is_retryable_error(NetworkError())
        assert not is_retryable_error(ParseError("x"))

    def test_is_retryable_by_message(self):
        assert is_retryable_error(RuntimeError("Connection reset by peer"))
        assert not is_retryable_error(RuntimeError("division by zero"))

    def test_retry_delay_grows_and_is_capped(self):
        first = get_retry_delay(RuntimeError(), 0)
        assert 0.5 <= first <= 0.55
        assert get_retry_delay(RuntimeError(), 10, cap=2.0) == 2.0

    def test_retry_delay_uses_retry_after(self):
        delay = get_retry_delay(RateLimitError(retry_after=1.0), 0)
        assert 1.0 <= delay <= 1.1
