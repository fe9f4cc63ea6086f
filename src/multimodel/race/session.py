"""
Response session: the lifecycle wrapper around one streaming completion call.

A session issues the request, iterates fragments, accumulates text and emits
lifecycle events. It always reaches exactly one terminal state:

- completed: the stream ended normally, start() returns the full text
- aborted: the batch token was signalled (or the session was disposed),
  start() returns SessionResult(aborted=True) instead of raising
- errored: the transport failed, `session:error` is emitted and the original
  exception propagates

Cancellation is observed immediately, even while the transport is blocked
waiting for its next fragment: every read is raced against the token.
"""

import asyncio
import inspect
from collections.abc import AsyncIterator, Awaitable, Iterable, Mapping
from typing import Any, TypeVar
from uuid import uuid4

from multimodel.models.events import SessionEvent
from multimodel.models.internal import ChatMessage, ProviderModel, SessionResult, SessionState
from multimodel.transport.base import StreamTransport
from multimodel.utils.cancellation import CancellationToken
from multimodel.utils.errors import PreconditionError
from multimodel.utils.events import EventEmitter, EventHandler, Unsubscribe
from multimodel.utils.logging import get_logger
from multimodel.utils.message_conversion import normalize_messages

logger = get_logger(__name__)

T = TypeVar("T")

_END_OF_STREAM = object()


class _StreamAborted(Exception):
    """Internal signal: the token fired or the session was disposed mid-await."""


class ResponseSession:
    """
    Manages one completion call from request to terminal outcome.

    Owned exclusively by its ModelExecutor (or stream runner); nothing else
    mutates its buffer or state.
    """

    def __init__(
        self,
        messages: Iterable[ChatMessage | Mapping[str, Any]],
        token: CancellationToken,
        transport: StreamTransport,
        provider_model: ProviderModel | None = None,
    ) -> None:
        """
        Create a session.

        Args:
            messages: Ordered {role, content} messages for the request
            token: Batch cancellation token shared with sibling sessions
            transport: Streaming transport that yields text fragments
            provider_model: Model to call; None uses the transport's default

        Raises:
            PreconditionError: If no token or no messages are supplied
        """
        if token is None:
            raise PreconditionError("A cancellation token is required to create a response session")

        normalized = normalize_messages(messages or [])
        if not normalized:
            raise PreconditionError("At least one message is required to create a response session")

        self.id = uuid4().hex
        self.messages = normalized
        self.token = token
        self.provider_model = provider_model
        self.state = SessionState.PENDING

        self._transport = transport
        self._events = EventEmitter(SessionEvent, owner="session")
        self._chunks: list[str] = []
        self._first_chunk = True
        self._stream: AsyncIterator[str] | None = None
        self._read_task: asyncio.Future | None = None
        self._disposed = False

    @property
    def chunks(self) -> list[str]:
        """Fragments buffered so far, in arrival order."""
        return list(self._chunks)

    @property
    def text(self) -> str:
        return "".join(self._chunks)

    def on(self, event: SessionEvent, handler: EventHandler) -> Unsubscribe:
        return self._events.on(event, handler)

    def once(self, event: SessionEvent, handler: EventHandler) -> Unsubscribe:
        return self._events.once(event, handler)

    def _set_state(self, state: SessionState) -> None:
        # Monotonic: a terminal state is final
        if not self.state.is_terminal:
            self.state = state

    def _should_abort(self) -> bool:
        return self.token.is_cancelled or self._disposed

    async def start(self) -> SessionResult:
        """
        Run the completion call to its terminal state.

        Returns:
            SessionResult with the full text, or aborted=True on cancellation

        Raises:
            PreconditionError: If the session was already started
            Exception: The transport's original error when the call fails
        """
        if self.state is not SessionState.PENDING:
            raise PreconditionError(f"Session {self.id} has already been started")
        self._set_state(SessionState.STREAMING)

        model_key = self.provider_model.key if self.provider_model else None
        self._events.emit(SessionEvent.INIT, session_id=self.id, provider_model=self.provider_model)

        try:
            if self._should_abort():
                return self._abort()

            stream = self._transport.stream_chat(self.messages, self.token, self.provider_model)
            if inspect.isawaitable(stream):
                stream = await self._race(stream)
            self._stream = stream

            self._events.emit(
                SessionEvent.STREAM_STARTED, session_id=self.id, provider_model=self.provider_model
            )

            while True:
                content = await self._race(self._read_next(stream))
                if content is _END_OF_STREAM:
                    break
                if not content or self._should_abort():
                    continue

                if self._first_chunk:
                    self._first_chunk = False
                    self._events.emit(SessionEvent.FIRST_CHUNK, content=content)

                self._chunks.append(content)
                self._events.emit(SessionEvent.CHUNK, content=content)

            # Transports stop quietly at a fragment boundary once the token fires
            if self._should_abort():
                return self._abort()

            text = "".join(self._chunks)
            self._set_state(SessionState.COMPLETED)
            self._events.emit(SessionEvent.COMPLETED, text=text, chunks=list(self._chunks))

            logger.debug(
                "Session completed",
                extra={
                    "session_id": self.id,
                    "provider_model": model_key,
                    "chunk_count": len(self._chunks),
                    "text_length": len(text),
                },
            )
            return SessionResult(text=text, chunks=list(self._chunks), aborted=False)

        except _StreamAborted:
            return self._abort()
        except Exception as exc:
            if self._should_abort():
                # Transports often surface cancellation as a closed-connection error
                return self._abort(error=exc)

            self._set_state(SessionState.ERRORED)
            logger.debug(
                "Session failed",
                extra={
                    "session_id": self.id,
                    "provider_model": model_key,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            self._events.emit(SessionEvent.ERROR, error=exc)
            raise
        finally:
            await self._close_stream()
            self._events.remove_all_listeners()

    def dispose(self) -> None:
        """
        Terminate any open stream read and drop every listener.

        Idempotent. A session disposed while streaming resolves as aborted.
        """
        if self._disposed:
            return
        self._disposed = True

        if self._read_task is not None and not self._read_task.done():
            self._read_task.cancel()

        self._events.remove_all_listeners()

    def _abort(self, error: Exception | None = None) -> SessionResult:
        self._set_state(SessionState.ABORTED)
        logger.debug(
            "Session aborted",
            extra={
                "session_id": self.id,
                "provider_model": self.provider_model.key if self.provider_model else None,
                "reason": self.token.reason,
                "disposed": self._disposed,
            },
        )
        self._events.emit(SessionEvent.ABORTED, reason=self.token.reason, error=error)
        return SessionResult(text="", chunks=[], aborted=True)

    @staticmethod
    async def _read_next(stream: AsyncIterator[str]) -> Any:
        try:
            return await stream.__anext__()
        except StopAsyncIteration:
            return _END_OF_STREAM

    async def _race(self, awaitable: Awaitable[T]) -> T:
        """
        Await `awaitable` unless the token fires (or dispose() runs) first.

        Raises:
            _StreamAborted: If cancellation won the race
        """
        if self._should_abort():
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise _StreamAborted()

        read_task = asyncio.ensure_future(awaitable)
        cancel_task = asyncio.ensure_future(self.token.wait())
        self._read_task = read_task
        try:
            await asyncio.wait({read_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            read_task.cancel()
            await asyncio.gather(read_task, return_exceptions=True)
            raise
        finally:
            cancel_task.cancel()
            self._read_task = None

        if read_task.done() and not read_task.cancelled():
            return read_task.result()

        # Cancellation won: stop the pending read so the stream can be closed
        read_task.cancel()
        await asyncio.gather(read_task, return_exceptions=True)
        raise _StreamAborted()

    async def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        aclose = getattr(stream, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as exc:
            logger.warning(
                "Failed to close provider stream",
                extra={"session_id": self.id, "error": str(exc), "error_type": type(exc).__name__},
            )


class ResponseSessionFactory:
    """Creates sessions bound to one transport."""

    def __init__(self, transport: StreamTransport) -> None:
        self.transport = transport

    def create_session(
        self,
        messages: Iterable[ChatMessage | Mapping[str, Any]],
        token: CancellationToken,
        provider_model: ProviderModel | None = None,
    ) -> ResponseSession:
        return ResponseSession(messages, token, self.transport, provider_model)
