"""
Provider-agnostic streaming transport interface.

A transport turns a batch's messages into an asynchronous sequence of already
normalised text fragments. The race core never parses vendor wire formats.
"""

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from multimodel.models.internal import ChatMessage, ProviderModel
from multimodel.utils.cancellation import CancellationToken


@runtime_checkable
class StreamTransport(Protocol):
    """Streaming completion call consumed by ResponseSession."""

    def stream_chat(
        self,
        messages: list[ChatMessage],
        token: CancellationToken,
        provider_model: ProviderModel | None = None,
    ) -> AsyncIterator[str]:
        """
        Stream a chat completion.

        Implementations stop yielding at the next fragment boundary once
        `token` is signalled and raise ExternalServiceError subclasses for
        provider failures.
        """
        ...
