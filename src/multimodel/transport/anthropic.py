"""
Anthropic streaming transport built on LangChain's ChatAnthropic.
"""

from collections.abc import AsyncIterator

from langchain_anthropic import ChatAnthropic

from multimodel.config import Settings
from multimodel.models.internal import ChatMessage, ProviderModel
from multimodel.utils.batch_context import get_batch_id
from multimodel.utils.cancellation import CancellationToken
from multimodel.utils.logging import get_logger
from multimodel.utils.message_conversion import convert_to_langchain_messages, extract_text
from multimodel.utils.provider_errors import map_provider_exception

logger = get_logger(__name__)

PROVIDER_NAME = "anthropic"


class AnthropicTransport:
    """
    Streams Claude completions via `ChatAnthropic.astream`.

    A ChatAnthropic client is built per call because each batch may race a
    different Claude model.
    """

    provider = PROVIDER_NAME

    def __init__(self, settings: Settings) -> None:
        self.api_key = settings.anthropic_api_key
        self.max_tokens = settings.max_tokens
        self.temperature = settings.temperature
        self.timeout = settings.request_timeout

    def _build_llm(self, model: str) -> ChatAnthropic:
        # The batch id flows ContextVar → request headers so provider logs can be correlated
        return ChatAnthropic(
            model=model,
            api_key=self.api_key,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            timeout=self.timeout,
            max_retries=0,
            default_headers={"X-Request-ID": get_batch_id() or ""},
        )

    async def stream_chat(
        self,
        messages: list[ChatMessage],
        token: CancellationToken,
        provider_model: ProviderModel | None = None,
    ) -> AsyncIterator[str]:
        """
        Stream text fragments for `provider_model.model`.

        Raises:
            ExternalServiceError: Mapped Anthropic SDK failure
        """
        if provider_model is None:
            raise ValueError("AnthropicTransport requires an explicit provider model")

        llm = self._build_llm(provider_model.model)
        lc_messages = convert_to_langchain_messages(messages)
        fragment_count = 0

        logger.debug(
            "Opening Anthropic stream",
            extra={"model_id": provider_model.model, "message_count": len(lc_messages)},
        )

        try:
            async for chunk in llm.astream(lc_messages):
                if token.is_cancelled:
                    break
                text = extract_text(chunk.content)
                if text:
                    fragment_count += 1
                    yield text
        except Exception as exc:
            mapped = map_provider_exception(exc, PROVIDER_NAME)
            if mapped is not exc:
                raise mapped from exc
            raise

        logger.debug(
            "Anthropic stream finished",
            extra={
                "model_id": provider_model.model,
                "fragment_count": fragment_count,
                "cancelled": token.is_cancelled,
            },
        )
