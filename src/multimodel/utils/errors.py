"""
Custom exception hierarchy for the multimodel application.

Provides domain-specific exceptions for different error scenarios.
Cancellation is deliberately absent: an aborted stream is a result, not an error.
"""


class MultiModelError(Exception):
    """
    Base exception for all multimodel-specific errors.

    All application errors should inherit from this class.
    """

    def __init__(self, message: str, error_code: str | None = None) -> None:
        """
        Initialize a multimodel error.

        Args:
            message: Human-readable error message
            error_code: Optional error code for categorization
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__


class ConfigurationError(MultiModelError):
    """
    Raised when there's an error in application configuration.

    Typically thrown when a provider is requested that has no configured client.
    """


class PreconditionError(MultiModelError):
    """
    Raised when a caller violates an API precondition.

    Programmer misuse (missing cancellation token, empty message list, double start)
    rather than a runtime condition to recover from.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code="INVALID_ARGUMENT")


class ExternalServiceError(MultiModelError):
    """
    Raised when an external AI provider encounters an error.

    Wraps errors from third-party services with context. Inside a race these
    are always folded into a failed model result.
    """

    def __init__(
        self,
        message: str,
        service_name: str,
        status_code: int | None = None,
        error_code: str | None = None,
    ) -> None:
        """
        Initialize an external service error.

        Args:
            message: Human-readable error message
            service_name: Name of the external service
            status_code: Optional HTTP status code
            error_code: Optional error code from the service
        """
        super().__init__(message, error_code)
        self.service_name = service_name
        self.status_code = status_code


TransportError = ExternalServiceError


class RetryableAPIError(ExternalServiceError):
    """
    Base class for transient provider errors.

    Kept as a category for reporting; the race never retries.
    """


class ProviderRateLimitError(RetryableAPIError):
    """Raised when a provider rate limit is exceeded."""

    def __init__(self, service_name: str, message: str = "Rate limit exceeded") -> None:
        super().__init__(
            message=message,
            service_name=service_name,
            status_code=429,
            error_code="RATE_LIMIT_EXCEEDED",
        )


class ProviderServerError(RetryableAPIError):
    """Raised when a provider returns a server error (5xx)."""

    def __init__(self, service_name: str, message: str, status_code: int = 500) -> None:
        super().__init__(
            message=message,
            service_name=service_name,
            status_code=status_code,
            error_code="API_SERVER_ERROR",
        )


class ProviderTimeoutError(RetryableAPIError):
    """Raised when a provider request times out."""

    def __init__(self, service_name: str, message: str = "API request timed out") -> None:
        super().__init__(
            message=message,
            service_name=service_name,
            status_code=504,
            error_code="API_TIMEOUT",
        )


class ProviderConnectionError(RetryableAPIError):
    """Raised when the connection to a provider fails."""

    def __init__(self, service_name: str, message: str = "Connection failed") -> None:
        super().__init__(
            message=message,
            service_name=service_name,
            status_code=503,
            error_code="CONNECTION_ERROR",
        )
