"""
Batch-wide cancellation token.

One token is created per batch and passed by reference into every session and
executor of that batch. Signalling it is idempotent and batch-granular: there is
no way to cancel a single model.
"""

import asyncio
from collections.abc import Callable

from multimodel.utils.logging import get_logger

logger = get_logger(__name__)

CancelListener = Callable[[str | None], None]


class CancellationToken:
    """
    Cooperative cancellation signal shared by every participant in a batch.

    Listeners fire once, synchronously inside cancel(), before any awaiting
    coroutine resumes, so UI cleanup registered here always precedes session
    teardown.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: str | None = None
        self._event = asyncio.Event()
        self._listeners: list[CancelListener] = []

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> bool:
        """
        Signal cancellation.

        Args:
            reason: Optional human-readable cause (e.g. "SIGINT")

        Returns:
            True if this call signalled the token, False if it was already signalled
        """
        if self._cancelled:
            return False

        self._cancelled = True
        self._reason = reason
        self._event.set()

        listeners, self._listeners = self._listeners, []
        logger.debug(
            "Cancellation signalled",
            extra={"reason": reason, "listener_count": len(listeners)},
        )
        for listener in listeners:
            self._notify(listener)
        return True

    def add_listener(self, listener: CancelListener) -> Callable[[], None]:
        """
        Register a fire-once callback invoked with the cancellation reason.

        A listener added after the token was signalled runs immediately.

        Returns:
            Callable that removes the listener
        """
        if self._cancelled:
            self._notify(listener)
            return lambda: None

        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def wait(self) -> str | None:
        """Suspend until the token is signalled; returns the reason."""
        await self._event.wait()
        return self._reason

    def _notify(self, listener: CancelListener) -> None:
        try:
            listener(self._reason)
        except Exception as exc:
            logger.error(
                f"Cancellation listener failed: {exc}",
                exc_info=True,
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
