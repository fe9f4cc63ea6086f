"""
Internal data models for the multimodel application.

These models describe the messages sent to providers, the model specifiers a
batch races, and the records each session and executor produce.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, NonNegativeFloat

from multimodel.utils.errors import PreconditionError


class MessageRole(str, Enum):
    """Chat message roles understood by every provider."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """A single {role, content} message in a batch."""

    role: MessageRole = Field(description="Message role (system, user, assistant)")
    content: str = Field(description="Message content")


class ProviderModel(BaseModel):
    """
    A {provider, model} pair that one executor races.

    Frozen so it can be used as a dict key and compared by value.
    """

    model_config = ConfigDict(frozen=True)

    provider: str = Field(min_length=1, description="Provider name, e.g. anthropic")
    model: str = Field(min_length=1, description="Provider-specific model ID")

    @property
    def key(self) -> str:
        """Stable `provider:model` identifier used by the coordinator."""
        return f"{self.provider}:{self.model}"

    @classmethod
    def parse(cls, spec: str) -> "ProviderModel":
        """
        Parse a `provider:model` string.

        Only the first colon separates provider from model, so model IDs that
        contain colons (e.g. Ollama tags) survive.

        Raises:
            PreconditionError: If either side of the colon is missing
        """
        provider, sep, model = spec.strip().partition(":")
        if not sep or not provider or not model:
            raise PreconditionError(f"Invalid model specifier '{spec}', expected provider:model")
        return cls(provider=provider, model=model)

    def __str__(self) -> str:
        return self.key


class SessionState(str, Enum):
    """Lifecycle of a response session. Transitions only move forward."""

    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ABORTED = "aborted"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.ABORTED, SessionState.ERRORED)


class SessionResult(BaseModel):
    """Resolved value of ResponseSession.start()."""

    text: str = Field(default="", description="Concatenation of every streamed fragment")
    chunks: list[str] = Field(default_factory=list, description="Fragments in arrival order")
    aborted: bool = Field(default=False, description="True when the batch token was signalled")


class ModelResult(BaseModel):
    """
    Finalized outcome of one model execution.

    Produced exactly once per executor regardless of outcome.
    """

    model: ProviderModel
    success: bool = Field(description="True when the stream completed normally")
    response: str | None = Field(default=None, description="Full response text")
    timing: NonNegativeFloat = Field(description="Wall-clock seconds from start to finish")
    error: str | None = Field(default=None, description="Readable failure description")
    is_winner: bool = Field(default=False, description="True for the live-streamed model")
    aborted: bool = Field(default=False, description="True when ended by batch cancellation")


class BatchOutcome(BaseModel):
    """Aggregate outcome of one batch handed back to the presentation layer."""

    successful_count: int = Field(ge=0)
    total_count: int = Field(ge=0)
    results: list[ModelResult] = Field(default_factory=list)
    cancelled: bool = False

    @property
    def all_failed(self) -> bool:
        return self.total_count > 0 and self.successful_count == 0
