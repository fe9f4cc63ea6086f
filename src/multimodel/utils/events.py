"""
Synchronous publish/subscribe primitive shared by sessions and coordinators.

Handlers run synchronously, in subscription order, to completion before emit()
returns. A failing handler is logged and skipped; it never interrupts the
emitter's own control flow or the remaining handlers.
"""

from collections.abc import Callable
from enum import Enum
from typing import Any

from multimodel.utils.logging import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[dict[str, Any]], None]
Unsubscribe = Callable[[], None]


class EventEmitter:
    """
    Event bus bound to a closed set of event names.

    Args:
        events: Enum class enumerating every event this emitter may carry
        owner: Label used in log records (e.g. "session", "coordinator")
    """

    def __init__(self, events: type[Enum], owner: str) -> None:
        self._events = events
        self._owner = owner
        self._handlers: dict[Enum, list[tuple[EventHandler, bool]]] = {}

    def _check(self, event: Enum) -> Enum:
        if not isinstance(event, self._events):
            raise ValueError(f"Unknown {self._owner} event: {event!r}")
        return event

    def on(self, event: Enum, handler: EventHandler) -> Unsubscribe:
        """Subscribe `handler` to every future `event`. Returns an unsubscribe callable."""
        return self._add(event, handler, once=False)

    def once(self, event: Enum, handler: EventHandler) -> Unsubscribe:
        """Subscribe `handler` to the next `event` only. Returns an unsubscribe callable."""
        return self._add(event, handler, once=True)

    def _add(self, event: Enum, handler: EventHandler, once: bool) -> Unsubscribe:
        entry = (handler, once)
        self._handlers.setdefault(self._check(event), []).append(entry)

        def unsubscribe() -> None:
            entries = self._handlers.get(event, [])
            if entry in entries:
                entries.remove(entry)

        return unsubscribe

    def emit(self, event: Enum, **payload: Any) -> int:
        """
        Deliver `payload` to every handler subscribed to `event`.

        Returns:
            Number of handlers invoked
        """
        entries = self._handlers.get(self._check(event))
        if not entries:
            return 0

        # Snapshot so handlers may (un)subscribe while we iterate
        snapshot = list(entries)
        for entry in snapshot:
            if entry[1] and entry in entries:
                entries.remove(entry)

        for handler, _ in snapshot:
            try:
                handler(payload)
            except Exception as exc:
                logger.error(
                    f"Handler for {self._owner} event '{event.value}' failed: {exc}",
                    exc_info=True,
                    extra={
                        "event": event.value,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
        return len(snapshot)

    def listener_count(self, event: Enum) -> int:
        return len(self._handlers.get(self._check(event), []))

    def remove_all_listeners(self) -> None:
        self._handlers.clear()
