"""
Streaming transport for OpenAI-compatible chat completion APIs.

Serves both OpenAI and DeepSeek, which differ only by base URL and key.
"""

from collections.abc import AsyncIterator

from openai import AsyncOpenAI

from multimodel.models.internal import ChatMessage, ProviderModel
from multimodel.utils.batch_context import get_batch_id
from multimodel.utils.cancellation import CancellationToken
from multimodel.utils.logging import get_logger
from multimodel.utils.message_conversion import convert_to_openai_messages
from multimodel.utils.provider_errors import map_provider_exception

logger = get_logger(__name__)


class OpenAICompatibleTransport:
    """Streams chat completions from one OpenAI-compatible endpoint."""

    def __init__(
        self,
        provider: str,
        api_key: str,
        base_url: str,
        timeout: float = 180.0,
        max_tokens: int | None = None,
        temperature: float | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.provider = provider
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = client or AsyncOpenAI(
            api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0
        )

    async def stream_chat(
        self,
        messages: list[ChatMessage],
        token: CancellationToken,
        provider_model: ProviderModel | None = None,
    ) -> AsyncIterator[str]:
        """
        Stream content deltas for `provider_model.model`.

        Raises:
            ExternalServiceError: Mapped OpenAI SDK failure
        """
        if provider_model is None:
            raise ValueError(f"{self.provider} transport requires an explicit provider model")

        options: dict = {}
        if self.max_tokens is not None:
            options["max_completion_tokens"] = self.max_tokens
        if self.temperature is not None:
            options["temperature"] = self.temperature

        batch_id = get_batch_id()
        logger.debug(
            f"Opening {self.provider} stream",
            extra={"model_id": provider_model.model, "message_count": len(messages)},
        )

        try:
            stream = await self.client.chat.completions.create(
                model=provider_model.model,
                messages=convert_to_openai_messages(messages),
                stream=True,
                extra_headers={"X-Request-ID": batch_id} if batch_id else None,
                **options,
            )
            try:
                async for chunk in stream:
                    if token.is_cancelled:
                        break
                    if not chunk.choices:
                        continue
                    content = chunk.choices[0].delta.content
                    if content:
                        yield content
            finally:
                await stream.close()
        except Exception as exc:
            mapped = map_provider_exception(exc, self.provider)
            if mapped is not exc:
                raise mapped from exc
            raise
