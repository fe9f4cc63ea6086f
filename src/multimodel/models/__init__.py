"""
Data models for the multimodel application.
"""

from multimodel.models.events import CoordinatorEvent, SessionEvent
from multimodel.models.internal import (
    BatchOutcome,
    ChatMessage,
    MessageRole,
    ModelResult,
    ProviderModel,
    SessionResult,
    SessionState,
)

__all__ = [
    "BatchOutcome",
    "ChatMessage",
    "CoordinatorEvent",
    "MessageRole",
    "ModelResult",
    "ProviderModel",
    "SessionEvent",
    "SessionResult",
    "SessionState",
]
