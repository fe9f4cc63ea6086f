"""
Message format conversion utilities.

Converts the provider-neutral {role, content} messages of a batch into the
shapes each transport needs: LangChain BaseMessage objects for the Anthropic
transport and plain dicts for OpenAI-compatible chat completions.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from multimodel.models.internal import ChatMessage, MessageRole
from multimodel.utils.logging import get_logger

logger = get_logger(__name__)


def normalize_messages(messages: Iterable[ChatMessage | Mapping[str, Any]]) -> list[ChatMessage]:
    """
    Coerce raw {role, content} mappings into ChatMessage models.

    Raises:
        pydantic.ValidationError: If a role is unknown or content is missing
    """
    return [
        msg if isinstance(msg, ChatMessage) else ChatMessage.model_validate(dict(msg))
        for msg in messages
    ]


def convert_to_langchain_messages(messages: list[ChatMessage]) -> list[BaseMessage]:
    """
    Convert ChatMessage models to LangChain BaseMessage format.

    Maps message roles to LangChain message types:
    - "system" → SystemMessage
    - "user" → HumanMessage
    - "assistant" → AIMessage

    Messages with empty content are skipped; providers reject them.

    Args:
        messages: Batch messages

    Returns:
        List of LangChain BaseMessage objects
    """
    langchain_messages: list[BaseMessage] = []

    for msg in messages:
        if not msg.content:
            logger.warning(f"Message with role '{msg.role.value}' has empty content, skipping")
            continue

        if msg.role is MessageRole.SYSTEM:
            langchain_messages.append(SystemMessage(content=msg.content))
        elif msg.role is MessageRole.USER:
            langchain_messages.append(HumanMessage(content=msg.content))
        else:
            langchain_messages.append(AIMessage(content=msg.content))

    logger.debug(
        "Converted messages to LangChain format",
        extra={"input_count": len(messages), "output_count": len(langchain_messages)},
    )

    return langchain_messages


def convert_to_openai_messages(messages: list[ChatMessage]) -> list[dict[str, str]]:
    """Convert ChatMessage models to OpenAI chat completion message dicts."""
    return [{"role": msg.role.value, "content": msg.content} for msg in messages if msg.content]


def extract_text(content: Any) -> str:
    """
    Extract plain text from a LangChain chunk's content.

    Anthropic chunks carry either a string or a list of content blocks
    ({"type": "text", "text": ...}); non-text blocks contribute nothing.
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, Mapping) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return ""
