"""
Model executor: binds one {provider, model} pair to a race participant.

Each execution drives one ResponseSession, competes for the winner slot on its
first non-empty fragment, and reports exactly one ModelResult to the
coordinator whatever happens. Individual failures never reach sibling
executions: they are folded into a failed result.
"""

import asyncio
import time
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from multimodel.models.events import SessionEvent
from multimodel.models.internal import ChatMessage, ModelResult, ProviderModel, SessionResult
from multimodel.race.coordinator import MultiModelCoordinator
from multimodel.race.session import ResponseSessionFactory
from multimodel.race.sink import UISink
from multimodel.utils.batch_context import set_model_key
from multimodel.utils.cancellation import CancellationToken
from multimodel.utils.errors import MultiModelError, PreconditionError, RetryableAPIError
from multimodel.utils.logging import get_logger
from multimodel.utils.message_conversion import normalize_messages

logger = get_logger(__name__)

CANCELLED_MESSAGE = "Request cancelled"


def describe_error(exc: BaseException) -> str:
    """Readable one-line description of a model failure."""
    if isinstance(exc, MultiModelError):
        return exc.message
    return str(exc) or type(exc).__name__


class ModelExecutor:
    """
    Runs models against a shared coordinator.

    Args:
        session_factory: Factory producing one ResponseSession per execution
    """

    def __init__(self, session_factory: ResponseSessionFactory) -> None:
        self.session_factory = session_factory

    async def execute_model(
        self,
        model: ProviderModel,
        messages: Iterable[ChatMessage | Mapping[str, Any]],
        coordinator: MultiModelCoordinator,
        sink: UISink,
        token: CancellationToken,
    ) -> ModelResult:
        """
        Execute one model and report its result to the coordinator.

        The first non-empty fragment this execution observes triggers exactly one
        `coordinator.set_winner(model)` call. A winner forwards that fragment and
        every later one to `sink` live; a loser keeps them in the session buffer
        for whole-block display on completion.

        Returns:
            The ModelResult passed to `coordinator.complete_model`

        Raises:
            PreconditionError: If session arguments are invalid (programmer misuse)
        """
        set_model_key(model.key)
        start_time = time.time()
        session = self.session_factory.create_session(messages, token, model)

        claimed = False
        is_winner = False

        def on_chunk(payload: dict[str, Any]) -> None:
            nonlocal claimed, is_winner
            content = payload["content"]
            if token.is_cancelled:
                return

            if not claimed and content.strip():
                claimed = True
                is_winner = coordinator.set_winner(model)
                if is_winner:
                    try:
                        sink.display_winner_header(model)
                    except Exception as exc:
                        logger.warning(
                            "Failed to display winner header",
                            extra={"provider_model": model.key, "error": str(exc)},
                        )

            if is_winner:
                sink.write_stream(content)

        session.on(SessionEvent.CHUNK, on_chunk)
        logger.debug("Starting model", extra={"provider_model": model.key})

        try:
            outcome = await session.start()
            result = self._build_result(model, outcome, start_time, is_winner)
        except asyncio.CancelledError:
            result = self._build_cancelled(model, start_time, is_winner)
            coordinator.complete_model(model, result)
            raise
        except Exception as exc:
            result = self._build_failure(model, exc, start_time, is_winner)
        finally:
            session.dispose()

        if result.is_winner and result.success:
            try:
                sink.display_winner_timing(result.timing)
            except Exception as exc:
                logger.warning(
                    "Failed to display winner timing",
                    extra={"provider_model": model.key, "error": str(exc)},
                )

        coordinator.complete_model(model, result)
        return result

    async def execute_models_race(
        self,
        models: Sequence[ProviderModel],
        messages: Sequence[ChatMessage | Mapping[str, Any]],
        coordinator: MultiModelCoordinator,
        sink: UISink,
        token: CancellationToken,
    ) -> int:
        """
        Race every model concurrently and wait for all of them.

        Every model is registered with the coordinator before it is awaited.
        All executions run to completion (failures are already folded into
        results), then the coordinator's all-completed signal is awaited so
        every display event has drained.

        Returns:
            Number of models whose result has success=True

        Raises:
            PreconditionError: On a missing token, empty or malformed messages,
                no models or duplicate model specifiers
        """
        if token is None:
            raise PreconditionError("A cancellation token is required to run a model race")
        if not messages:
            raise PreconditionError("At least one message is required to run a model race")
        try:
            normalized = normalize_messages(messages)
        except ValidationError as exc:
            raise PreconditionError(f"Invalid messages for model race: {exc}") from exc
        if not models:
            raise PreconditionError("At least one model is required to run a model race")

        keys = [model.key for model in models]
        duplicates = sorted({key for key in keys if keys.count(key) > 1})
        if duplicates:
            raise PreconditionError(f"Duplicate models in race: {', '.join(duplicates)}")

        logger.info(f"Starting race with {len(models)} models", extra={"models": keys})

        tasks: list[asyncio.Task[ModelResult]] = []
        for model in models:
            task = asyncio.create_task(
                self.execute_model(model, normalized, coordinator, sink, token),
                name=f"model:{model.key}",
            )
            coordinator.register_model(model, task)
            tasks.append(task)

        try:
            results = await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        await coordinator.wait_all_completed()

        successful_count = sum(1 for result in results if result.success)
        logger.info(
            f"Race completed - {successful_count}/{len(models)} successful",
            extra={
                "successful_models": successful_count,
                "total_models": len(models),
                "winner": coordinator.winner_model.key if coordinator.winner_model else None,
                "cancelled": token.is_cancelled,
            },
        )
        return successful_count

    def _build_result(
        self,
        model: ProviderModel,
        outcome: SessionResult,
        start_time: float,
        is_winner: bool,
    ) -> ModelResult:
        if outcome.aborted:
            return self._build_cancelled(model, start_time, is_winner)

        timing = time.time() - start_time
        logger.debug(
            "Model completed successfully",
            extra={
                "provider_model": model.key,
                "elapsed_seconds": timing,
                "response_length": len(outcome.text),
                "is_winner": is_winner,
            },
        )
        return ModelResult(
            model=model,
            success=True,
            response=outcome.text,
            timing=timing,
            is_winner=is_winner,
        )

    def _build_cancelled(self, model: ProviderModel, start_time: float, is_winner: bool) -> ModelResult:
        timing = time.time() - start_time
        logger.info(
            "Model request cancelled",
            extra={"provider_model": model.key, "elapsed_seconds": timing},
        )
        return ModelResult(
            model=model,
            success=False,
            timing=timing,
            error=CANCELLED_MESSAGE,
            is_winner=is_winner,
            aborted=True,
        )

    def _build_failure(
        self,
        model: ProviderModel,
        exc: Exception,
        start_time: float,
        is_winner: bool,
    ) -> ModelResult:
        timing = time.time() - start_time
        error = describe_error(exc)

        log_extra = {
            "provider_model": model.key,
            "elapsed_seconds": timing,
            "error": error,
            "error_type": type(exc).__name__,
            "error_code": getattr(exc, "error_code", None),
        }
        if isinstance(exc, RetryableAPIError):
            logger.warning(f"Transient provider error for {model.key}: {error}", extra=log_extra)
        else:
            logger.error(f"Model {model.key} failed: {error}", extra=log_extra)

        return ModelResult(
            model=model,
            success=False,
            timing=timing,
            error=error,
            is_winner=is_winner,
        )
