"""
Unit tests for provider SDK exception mapping and the error hierarchy.
"""

from unittest.mock import Mock

import anthropic
import openai
import pytest

from multimodel.utils.errors import (
    ConfigurationError,
    ExternalServiceError,
    MultiModelError,
    PreconditionError,
    ProviderConnectionError,
    ProviderRateLimitError,
    ProviderServerError,
    ProviderTimeoutError,
    RetryableAPIError,
    TransportError,
)
from multimodel.utils.provider_errors import map_provider_exception


class TestErrorHierarchy:
    """Test custom error classes."""

    def test_base_error_code_defaults_to_class_name(self) -> None:
        """Test error_code falls back to the class name."""
        error = ConfigurationError("missing key")
        assert error.message == "missing key"
        assert error.error_code == "ConfigurationError"
        assert isinstance(error, MultiModelError)

    def test_precondition_error_code(self) -> None:
        """Test programmer misuse is tagged INVALID_ARGUMENT."""
        assert PreconditionError("bad").error_code == "INVALID_ARGUMENT"

    def test_transport_error_alias(self) -> None:
        """Test TransportError is the external service error category."""
        assert TransportError is ExternalServiceError

    @pytest.mark.parametrize(
        ("error", "status_code", "error_code"),
        [
            (ProviderRateLimitError("openai"), 429, "RATE_LIMIT_EXCEEDED"),
            (ProviderServerError("openai", "down", status_code=502), 502, "API_SERVER_ERROR"),
            (ProviderTimeoutError("openai"), 504, "API_TIMEOUT"),
            (ProviderConnectionError("openai"), 503, "CONNECTION_ERROR"),
        ],
    )
    def test_transient_errors(self, error: RetryableAPIError, status_code: int, error_code: str) -> None:
        """Test transient provider errors carry status and code."""
        assert isinstance(error, RetryableAPIError)
        assert error.status_code == status_code
        assert error.error_code == error_code
        assert error.service_name == "openai"


class TestAnthropicMapping:
    """Test mapping Anthropic SDK exceptions."""

    def test_rate_limit(self) -> None:
        """Test mapping RateLimitError to ProviderRateLimitError."""
        original = anthropic.RateLimitError("Rate limit", response=Mock(), body=None)
        mapped = map_provider_exception(original, "anthropic")
        assert isinstance(mapped, ProviderRateLimitError)
        assert mapped.service_name == "anthropic"

    def test_internal_server_error(self) -> None:
        """Test mapping InternalServerError to ProviderServerError."""
        original = anthropic.InternalServerError("Server error", response=Mock(status_code=500), body=None)
        mapped = map_provider_exception(original, "anthropic")
        assert isinstance(mapped, ProviderServerError)
        assert mapped.status_code == 500

    def test_timeout(self) -> None:
        """Test mapping APITimeoutError to ProviderTimeoutError."""
        original = anthropic.APITimeoutError(request=Mock())
        mapped = map_provider_exception(original, "anthropic")
        assert isinstance(mapped, ProviderTimeoutError)

    def test_connection(self) -> None:
        """Test mapping APIConnectionError to ProviderConnectionError."""
        original = anthropic.APIConnectionError(message="Connection lost", request=Mock())
        mapped = map_provider_exception(original, "anthropic")
        assert isinstance(mapped, ProviderConnectionError)
        assert mapped.message == "Connection lost"


class TestOpenAIMapping:
    """Test mapping OpenAI SDK exceptions (also used for DeepSeek)."""

    def test_rate_limit(self) -> None:
        """Test mapping RateLimitError to ProviderRateLimitError."""
        original = openai.RateLimitError("Rate limit", response=Mock(), body=None)
        mapped = map_provider_exception(original, "deepseek")
        assert isinstance(mapped, ProviderRateLimitError)
        assert mapped.service_name == "deepseek"

    def test_timeout_checked_before_connection(self) -> None:
        """Test APITimeoutError is not mistaken for a plain connection error."""
        mapped = map_provider_exception(openai.APITimeoutError(request=Mock()), "openai")
        assert isinstance(mapped, ProviderTimeoutError)

    def test_connection(self) -> None:
        """Test mapping APIConnectionError to ProviderConnectionError."""
        mapped = map_provider_exception(openai.APIConnectionError(request=Mock()), "openai")
        assert isinstance(mapped, ProviderConnectionError)

    def test_status_error_5xx(self) -> None:
        """Test other 5xx status errors map to ProviderServerError."""
        original = openai.APIStatusError("Bad gateway", response=Mock(status_code=502), body=None)
        mapped = map_provider_exception(original, "openai")
        assert isinstance(mapped, ProviderServerError)
        assert mapped.status_code == 502

    def test_status_error_4xx(self) -> None:
        """Test client errors map to a non-retryable ExternalServiceError."""
        original = openai.AuthenticationError("Invalid key", response=Mock(status_code=401), body=None)
        mapped = map_provider_exception(original, "openai")
        assert type(mapped) is ExternalServiceError
        assert mapped.error_code == "API_ERROR"
        assert mapped.status_code == 401


class TestPassThrough:
    """Test exceptions that are not remapped."""

    def test_custom_error_returned_unchanged(self) -> None:
        """Test already-mapped errors pass straight through."""
        error = ProviderTimeoutError("openai")
        assert map_provider_exception(error, "openai") is error

    def test_unknown_error_returned_unchanged(self) -> None:
        """Test non-SDK exceptions are returned as-is."""
        error = KeyError("x")
        assert map_provider_exception(error, "openai") is error
