"""
Unit tests for message conversion utilities.
"""

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from pydantic import ValidationError

from multimodel.models.internal import ChatMessage
from multimodel.utils.message_conversion import (
    convert_to_langchain_messages,
    convert_to_openai_messages,
    extract_text,
    normalize_messages,
)


class TestNormalizeMessages:
    """Test coercion of raw message mappings."""

    def test_mixed_inputs(self) -> None:
        """Test ChatMessage instances pass through and dicts are validated."""
        existing = ChatMessage(role="system", content="be brief")
        result = normalize_messages([existing, {"role": "user", "content": "hi"}])
        assert result[0] is existing
        assert result[1] == ChatMessage(role="user", content="hi")

    def test_invalid_role(self) -> None:
        """Test unknown roles fail validation."""
        with pytest.raises(ValidationError):
            normalize_messages([{"role": "robot", "content": "x"}])


class TestConvertToLangChain:
    """Test conversion to LangChain message types."""

    def test_role_mapping(self) -> None:
        """Test each role maps to its LangChain class."""
        messages = [
            ChatMessage(role="system", content="sys"),
            ChatMessage(role="user", content="question"),
            ChatMessage(role="assistant", content="answer"),
        ]
        converted = convert_to_langchain_messages(messages)
        assert [type(m) for m in converted] == [SystemMessage, HumanMessage, AIMessage]
        assert [m.content for m in converted] == ["sys", "question", "answer"]

    def test_skips_empty_content(self) -> None:
        """Test empty messages are dropped."""
        converted = convert_to_langchain_messages(
            [ChatMessage(role="user", content=""), ChatMessage(role="user", content="x")]
        )
        assert len(converted) == 1


class TestConvertToOpenAI:
    """Test conversion to chat completion dicts."""

    def test_dicts(self) -> None:
        """Test roles are emitted as plain strings."""
        converted = convert_to_openai_messages(
            [ChatMessage(role="system", content="s"), ChatMessage(role="user", content="")]
        )
        assert converted == [{"role": "system", "content": "s"}]


class TestExtractText:
    """Test chunk content extraction."""

    def test_string(self) -> None:
        assert extract_text("abc") == "abc"

    def test_blocks(self) -> None:
        """Test text blocks are concatenated and other blocks ignored."""
        content = [{"type": "text", "text": "a"}, {"type": "tool_use", "id": "x"}, "b"]
        assert extract_text(content) == "ab"

    def test_other(self) -> None:
        assert extract_text(None) == ""
