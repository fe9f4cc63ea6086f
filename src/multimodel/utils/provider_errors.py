"""
Provider SDK exception mapping utilities.

Maps Anthropic and OpenAI SDK exceptions to the multimodel error hierarchy so
failed model results carry a consistent error code and readable message.
"""

import anthropic
import openai

from multimodel.utils.errors import (
    ExternalServiceError,
    ProviderConnectionError,
    ProviderRateLimitError,
    ProviderServerError,
    ProviderTimeoutError,
)
from multimodel.utils.logging import get_logger

logger = get_logger(__name__)

# Both SDKs share the same exception layout; timeout must be checked before
# connection because APITimeoutError subclasses APIConnectionError.
_RATE_LIMIT = (anthropic.RateLimitError, openai.RateLimitError)
_SERVER = (anthropic.InternalServerError, openai.InternalServerError)
_TIMEOUT = (anthropic.APITimeoutError, openai.APITimeoutError)
_CONNECTION = (anthropic.APIConnectionError, openai.APIConnectionError)
_API = (anthropic.APIError, openai.APIError)


def map_provider_exception(exc: Exception, service_name: str) -> Exception:
    """
    Map a provider SDK exception to a custom error class.

    Args:
        exc: Exception raised by a provider SDK
        service_name: Provider name recorded on the mapped error

    Returns:
        Mapped custom exception (or original if unmapped)
    """
    if isinstance(exc, ExternalServiceError):
        return exc

    if isinstance(exc, _RATE_LIMIT):
        logger.debug(
            "Mapping RateLimitError to ProviderRateLimitError",
            extra={"service": service_name, "original_error": str(exc)},
        )
        return ProviderRateLimitError(service_name=service_name, message=str(exc))

    if isinstance(exc, _SERVER):
        status_code = getattr(exc, "status_code", 500)
        logger.debug(
            "Mapping InternalServerError to ProviderServerError",
            extra={"service": service_name, "original_error": str(exc), "status_code": status_code},
        )
        return ProviderServerError(
            service_name=service_name, message=str(exc), status_code=status_code
        )

    if isinstance(exc, _TIMEOUT):
        logger.debug(
            "Mapping APITimeoutError to ProviderTimeoutError",
            extra={"service": service_name, "original_error": str(exc)},
        )
        return ProviderTimeoutError(service_name=service_name, message=str(exc))

    if isinstance(exc, _CONNECTION):
        logger.debug(
            "Mapping APIConnectionError to ProviderConnectionError",
            extra={"service": service_name, "original_error": str(exc)},
        )
        return ProviderConnectionError(service_name=service_name, message=str(exc))

    if isinstance(exc, _API):
        status_code = getattr(exc, "status_code", None)

        if status_code and status_code >= 500:
            logger.debug(
                "Mapping APIError (5xx) to ProviderServerError",
                extra={"service": service_name, "original_error": str(exc), "status_code": status_code},
            )
            return ProviderServerError(
                service_name=service_name, message=str(exc), status_code=status_code
            )

        logger.debug(
            "Mapping APIError to ExternalServiceError",
            extra={"service": service_name, "original_error": str(exc), "status_code": status_code},
        )
        return ExternalServiceError(
            message=str(exc),
            service_name=service_name,
            status_code=status_code,
            error_code="API_ERROR",
        )

    logger.debug(
        f"No mapping for exception type {type(exc).__name__}, returning original",
        extra={"error_type": type(exc).__name__, "error": str(exc)},
    )
    return exc
