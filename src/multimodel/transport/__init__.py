"""
Provider transports that stream normalised text fragments.
"""

from multimodel.transport.anthropic import AnthropicTransport
from multimodel.transport.base import StreamTransport
from multimodel.transport.openai_compat import OpenAICompatibleTransport
from multimodel.transport.router import ProviderRouter, build_router

__all__ = [
    "AnthropicTransport",
    "OpenAICompatibleTransport",
    "ProviderRouter",
    "StreamTransport",
    "build_router",
]
