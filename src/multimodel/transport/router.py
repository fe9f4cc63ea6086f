"""
Provider router: one StreamTransport facade over every configured provider.
"""

from collections.abc import AsyncIterator

from multimodel.config import Settings
from multimodel.models.internal import ChatMessage, ProviderModel
from multimodel.transport.anthropic import AnthropicTransport
from multimodel.transport.base import StreamTransport
from multimodel.transport.openai_compat import OpenAICompatibleTransport
from multimodel.utils.cancellation import CancellationToken
from multimodel.utils.errors import ConfigurationError
from multimodel.utils.logging import get_logger

logger = get_logger(__name__)


class ProviderRouter:
    """
    Dispatches stream_chat calls by provider name.

    A call without a provider model uses the router's default, which is how
    single-model commands reach the currently selected model.
    """

    def __init__(
        self,
        transports: dict[str, StreamTransport],
        default: ProviderModel | None = None,
    ) -> None:
        self._transports = dict(transports)
        self.default = default

    @property
    def providers(self) -> list[str]:
        return sorted(self._transports)

    def resolve(self, provider_model: ProviderModel | None) -> tuple[StreamTransport, ProviderModel]:
        """
        Pick the transport and concrete model for a request.

        Raises:
            ConfigurationError: If no model is given and no default exists, or the
                provider has no configured transport
        """
        target = provider_model or self.default
        if target is None:
            raise ConfigurationError("No model specified and no default model configured")

        transport = self._transports.get(target.provider)
        if transport is None:
            raise ConfigurationError(
                f"Provider '{target.provider}' is not configured "
                f"(available: {', '.join(self.providers) or 'none'})"
            )
        return transport, target

    def stream_chat(
        self,
        messages: list[ChatMessage],
        token: CancellationToken,
        provider_model: ProviderModel | None = None,
    ) -> AsyncIterator[str]:
        transport, target = self.resolve(provider_model)
        return transport.stream_chat(messages, token, target)


def build_router(settings: Settings) -> ProviderRouter:
    """
    Build a ProviderRouter from settings.

    Providers without an API key are skipped so a partially configured
    environment still works for the providers it has.
    """
    transports: dict[str, StreamTransport] = {}

    if settings.anthropic_api_key:
        transports["anthropic"] = AnthropicTransport(settings)

    for provider, api_key, base_url in (
        ("openai", settings.openai_api_key, settings.openai_base_url),
        ("deepseek", settings.deepseek_api_key, settings.deepseek_base_url),
    ):
        if api_key:
            transports[provider] = OpenAICompatibleTransport(
                provider=provider,
                api_key=api_key,
                base_url=base_url,
                timeout=settings.request_timeout,
                max_tokens=settings.max_tokens,
                temperature=settings.temperature,
            )

    logger.info(
        "Provider router built",
        extra={
            "providers": sorted(transports),
            "default_model": settings.default_provider_model.key,
        },
    )
    return ProviderRouter(transports, default=settings.default_provider_model)
