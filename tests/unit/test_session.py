"""
Unit tests for ResponseSession.

Drives sessions with scripted transports to verify event ordering, terminal
states, cancellation while blocked on the transport, and error propagation.
"""

import asyncio
from typing import Any

import pytest

from multimodel.models.events import SessionEvent
from multimodel.models.internal import SessionState
from multimodel.race.session import ResponseSession, ResponseSessionFactory
from multimodel.utils.cancellation import CancellationToken
from multimodel.utils.errors import PreconditionError, ProviderRateLimitError
from tests.fakes import FakeTransport, Script, pm, user_messages


def record_events(session: ResponseSession) -> list[tuple[SessionEvent, dict[str, Any]]]:
    seen: list[tuple[SessionEvent, dict[str, Any]]] = []
    for event in SessionEvent:
        session.on(event, lambda payload, event=event: seen.append((event, payload)))
    return seen


class TestSessionConstruction:
    """Test constructor preconditions."""

    def test_requires_token(self) -> None:
        """Test a session cannot be created without a cancellation token."""
        with pytest.raises(PreconditionError, match="cancellation token"):
            ResponseSession(user_messages(), None, FakeTransport())  # type: ignore[arg-type]

    def test_requires_messages(self) -> None:
        """Test a session cannot be created with an empty message list."""
        with pytest.raises(PreconditionError, match="message"):
            ResponseSession([], CancellationToken(), FakeTransport())

    def test_accepts_plain_dict_messages(self) -> None:
        """Test {role, content} mappings are normalised to ChatMessage."""
        session = ResponseSession(
            [{"role": "user", "content": "hi"}], CancellationToken(), FakeTransport()
        )
        assert session.messages[0].content == "hi"
        assert session.state is SessionState.PENDING

    def test_factory_binds_transport(self) -> None:
        """Test the factory creates independent sessions on one transport."""
        transport = FakeTransport()
        factory = ResponseSessionFactory(transport)
        token = CancellationToken()

        first = factory.create_session(user_messages(), token, pm("openai:a"))
        second = factory.create_session(user_messages(), token, pm("openai:b"))

        assert first.id != second.id
        assert first.provider_model == pm("openai:a")


class TestSessionCompletion:
    """Test the normal streaming path."""

    @pytest.mark.asyncio
    async def test_event_order_and_result(self) -> None:
        """Test init, stream-started, first-chunk, chunks, completed in that order."""
        transport = FakeTransport({"openai:m": Script(fragments=["Hel", "lo", "!"])})
        session = ResponseSession(user_messages(), CancellationToken(), transport, pm("openai:m"))
        seen = record_events(session)

        result = await session.start()

        assert [event for event, _ in seen] == [
            SessionEvent.INIT,
            SessionEvent.STREAM_STARTED,
            SessionEvent.FIRST_CHUNK,
            SessionEvent.CHUNK,
            SessionEvent.CHUNK,
            SessionEvent.CHUNK,
            SessionEvent.COMPLETED,
        ]
        assert seen[-1][1] == {"text": "Hello!", "chunks": ["Hel", "lo", "!"]}
        chunk_payloads = [payload["content"] for event, payload in seen if event is SessionEvent.CHUNK]
        assert result.text == "Hello!"
        assert "".join(chunk_payloads) == result.text
        assert result.chunks == chunk_payloads
        assert result.aborted is False
        assert session.state is SessionState.COMPLETED

    @pytest.mark.asyncio
    async def test_empty_fragments_are_ignored(self) -> None:
        """Test empty fragments neither buffer nor emit chunk events."""
        transport = FakeTransport(default=Script(fragments=["", "a", "", "b"]))
        session = ResponseSession(user_messages(), CancellationToken(), transport)
        seen = record_events(session)

        result = await session.start()

        chunk_payloads = [payload for event, payload in seen if event is SessionEvent.CHUNK]
        assert chunk_payloads == [{"content": "a"}, {"content": "b"}]
        assert result.chunks == ["a", "b"]

    @pytest.mark.asyncio
    async def test_empty_stream_completes_with_empty_text(self) -> None:
        """Test a stream with no fragments still completes normally."""
        session = ResponseSession(
            user_messages(), CancellationToken(), FakeTransport(default=Script(fragments=[]))
        )
        seen = record_events(session)

        result = await session.start()

        assert result.text == ""
        assert SessionEvent.FIRST_CHUNK not in [event for event, _ in seen]
        assert session.state is SessionState.COMPLETED

    @pytest.mark.asyncio
    async def test_transport_receives_messages_and_model(self) -> None:
        """Test the session forwards normalised messages and its provider model."""
        transport = FakeTransport()
        session = ResponseSession(user_messages("ping"), CancellationToken(), transport, pm("deepseek:chat"))

        await session.start()

        messages, provider_model = transport.calls[0]
        assert messages[0].content == "ping"
        assert provider_model == pm("deepseek:chat")
        assert transport.closed == ["deepseek:chat"]

    @pytest.mark.asyncio
    async def test_awaitable_stream_is_supported(self) -> None:
        """Test transports may return a coroutine that resolves to the stream."""
        inner = FakeTransport(default=Script(fragments=["x", "y"]))

        class AwaitableTransport:
            def stream_chat(self, messages, token, provider_model=None):  # type: ignore[no-untyped-def]
                async def open_stream():  # type: ignore[no-untyped-def]
                    return inner.stream_chat(messages, token, provider_model)

                return open_stream()

        session = ResponseSession(user_messages(), CancellationToken(), AwaitableTransport())
        result = await session.start()

        assert result.text == "xy"

    @pytest.mark.asyncio
    async def test_start_twice_raises(self) -> None:
        """Test a session can only be started once."""
        session = ResponseSession(user_messages(), CancellationToken(), FakeTransport())
        await session.start()

        with pytest.raises(PreconditionError, match="already been started"):
            await session.start()


class TestSessionCancellation:
    """Test abort paths."""

    @pytest.mark.asyncio
    async def test_cancelled_before_start_never_calls_transport(self) -> None:
        """Test a pre-cancelled token aborts without issuing the request."""
        token = CancellationToken()
        token.cancel("early")
        transport = FakeTransport()
        session = ResponseSession(user_messages(), token, transport)
        seen = record_events(session)

        result = await session.start()

        assert result.aborted is True
        assert result.text == ""
        assert transport.calls == []
        assert [event for event, _ in seen] == [SessionEvent.INIT, SessionEvent.ABORTED]
        assert seen[-1][1]["reason"] == "early"
        assert session.state is SessionState.ABORTED

    @pytest.mark.asyncio
    async def test_cancel_while_blocked_on_transport(self) -> None:
        """Test cancellation resolves start() even while the transport hangs."""
        token = CancellationToken()
        transport = FakeTransport(default=Script(fragments=["partial"], hang=True))
        session = ResponseSession(user_messages(), token, transport)
        first_chunk = asyncio.Event()
        session.on(SessionEvent.FIRST_CHUNK, lambda _: first_chunk.set())
        seen = record_events(session)

        task = asyncio.create_task(session.start())
        await asyncio.wait_for(first_chunk.wait(), timeout=1)
        token.cancel("user")
        result = await asyncio.wait_for(task, timeout=1)

        assert result.aborted is True
        assert result.text == ""
        assert session.state is SessionState.ABORTED
        assert seen[-1][0] is SessionEvent.ABORTED
        assert SessionEvent.COMPLETED not in [event for event, _ in seen]
        assert transport.closed == ["default"]

    @pytest.mark.asyncio
    async def test_no_chunk_events_after_cancel(self) -> None:
        """Test fragments arriving after cancellation are not emitted."""
        token = CancellationToken()
        transport = FakeTransport(default=Script(fragments=["a", "b", "c"]))
        session = ResponseSession(user_messages(), token, transport)
        chunks: list[str] = []

        def on_chunk(payload: dict[str, Any]) -> None:
            chunks.append(payload["content"])
            token.cancel("after first")

        session.on(SessionEvent.CHUNK, on_chunk)
        result = await session.start()

        assert chunks == ["a"]
        assert result.aborted is True

    @pytest.mark.asyncio
    async def test_dispose_is_idempotent(self) -> None:
        """Test dispose() can be called repeatedly and drops listeners."""
        session = ResponseSession(user_messages(), CancellationToken(), FakeTransport())
        seen = record_events(session)

        session.dispose()
        session.dispose()
        result = await session.start()

        assert result.aborted is True
        assert seen == []

    @pytest.mark.asyncio
    async def test_error_after_cancel_resolves_as_aborted(self) -> None:
        """Test a transport error raised after cancellation is treated as an abort."""
        token = CancellationToken()

        class ClosingTransport:
            def stream_chat(self, messages, token, provider_model=None):  # type: ignore[no-untyped-def]
                async def stream():  # type: ignore[no-untyped-def]
                    yield "a"
                    token.cancel("user")
                    raise ConnectionError("socket closed")

                return stream()

        session = ResponseSession(user_messages(), token, ClosingTransport())
        aborted: list[dict[str, Any]] = []
        session.on(SessionEvent.ABORTED, aborted.append)

        result = await session.start()

        assert result.aborted is True
        assert isinstance(aborted[0]["error"], ConnectionError)


class TestSessionErrors:
    """Test the errored terminal state."""

    @pytest.mark.asyncio
    async def test_transport_error_propagates_and_emits(self) -> None:
        """Test the original exception propagates after session:error."""
        error = ProviderRateLimitError(service_name="openai", message="slow down")
        transport = FakeTransport(default=Script(fragments=["a"], error=error))
        session = ResponseSession(user_messages(), CancellationToken(), transport)
        seen = record_events(session)

        with pytest.raises(ProviderRateLimitError) as exc_info:
            await session.start()

        assert exc_info.value is error
        assert seen[-1] == (SessionEvent.ERROR, {"error": error})
        assert SessionEvent.COMPLETED not in [event for event, _ in seen]
        assert session.state is SessionState.ERRORED
        assert transport.closed == ["default"]

    @pytest.mark.asyncio
    async def test_transport_failing_on_open_propagates(self) -> None:
        """Test errors raised by stream_chat itself also reach the caller."""

        class BrokenTransport:
            def stream_chat(self, messages, token, provider_model=None):  # type: ignore[no-untyped-def]
                raise RuntimeError("cannot connect")

        session = ResponseSession(user_messages(), CancellationToken(), BrokenTransport())

        with pytest.raises(RuntimeError, match="cannot connect"):
            await session.start()
        assert session.state is SessionState.ERRORED
