"""
Closed event-name sets for sessions and coordinators.

Event emitters are bound to one of these enums and reject any other name.
"""

from enum import Enum


class SessionEvent(str, Enum):
    """Lifecycle events emitted by a ResponseSession, in emission order."""

    INIT = "session:init"
    STREAM_STARTED = "session:stream-started"
    FIRST_CHUNK = "stream:first-chunk"
    CHUNK = "stream:chunk"
    COMPLETED = "session:completed"
    ABORTED = "session:aborted"
    ERROR = "session:error"


class CoordinatorEvent(str, Enum):
    """Aggregate events emitted by a MultiModelCoordinator."""

    WINNER_SELECTED = "winner:selected"
    WINNER_COMPLETED = "winner:completed"
    MODEL_COMPLETED = "model:completed"
    DISPLAY_RESULT = "model:display-result"
    REMAINING_COUNT_CHANGED = "remaining-count:changed"
    ALL_COMPLETED = "all:completed"
