"""
Batch runner: one user request fanned out to one or more models.

Owns the batch's coordinator, executor and cancellation wiring, and turns
coordinator events into UI calls. Nothing created here outlives the batch
except the returned BatchOutcome.
"""

from collections.abc import Callable, Mapping, Sequence
from typing import Any
from uuid import uuid4

from multimodel.models.internal import BatchOutcome, ChatMessage, ModelResult, ProviderModel
from multimodel.race.coordinator import MultiModelCoordinator
from multimodel.race.executor import ModelExecutor
from multimodel.race.session import ResponseSessionFactory
from multimodel.race.sink import UISink
from multimodel.transport.base import StreamTransport
from multimodel.utils.batch_context import set_batch_id
from multimodel.utils.cancellation import CancellationToken
from multimodel.utils.errors import PreconditionError
from multimodel.utils.logging import get_logger

logger = get_logger(__name__)

ResponsesHook = Callable[[list[str]], None]


async def run_batch(
    models: Sequence[ProviderModel],
    messages: Sequence[ChatMessage | Mapping[str, Any]],
    transport: StreamTransport,
    sink: UISink,
    token: CancellationToken,
    on_responses: ResponsesHook | None = None,
    default_model: ProviderModel | None = None,
) -> BatchOutcome:
    """
    Race `models` on `messages` and render the outcome through `sink`.

    Args:
        models: Models bound to the command; empty means "use default_model"
        messages: Ordered {role, content} messages
        transport: Streaming transport shared by every session
        sink: Presentation layer
        token: The batch's cancellation token
        on_responses: Receives every successful response text, in completion
            order, unless the batch was cancelled (conversation context update)
        default_model: Implicit model for commands that name none

    Returns:
        BatchOutcome with the success count, per-model results and cancel flag

    Raises:
        PreconditionError: If no model can be resolved, or on race misuse
    """
    if not models:
        if default_model is None:
            raise PreconditionError("No models given and no default model configured")
        models = [default_model]

    batch_id = uuid4().hex[:12]
    set_batch_id(batch_id)

    coordinator = MultiModelCoordinator()
    executor = ModelExecutor(ResponseSessionFactory(transport))
    total_count = len(models)
    winner_completed = False
    successful_results: list[ModelResult] = []

    def on_display_result(payload: dict[str, Any]) -> None:
        result: ModelResult = payload["result"]
        if result.is_winner or token.is_cancelled:
            return
        sink.display_model_result(result)

        remaining = coordinator.get_remaining_count()
        if winner_completed:
            if remaining > 0:
                sink.show_remaining_spinner(remaining)
            else:
                sink.cleanup()
        elif coordinator.winner_model is None and remaining > 0:
            # No winner yet
            sink.start_initial_spinner()

    def on_winner_completed(payload: dict[str, Any]) -> None:
        nonlocal winner_completed
        winner_completed = True
        remaining = coordinator.get_remaining_count()
        if remaining > 0 and not token.is_cancelled:
            sink.show_remaining_spinner(remaining)

    def on_model_completed(payload: dict[str, Any]) -> None:
        result: ModelResult = payload["result"]
        if result.success and result.response:
            successful_results.append(result)

    def on_all_completed(payload: dict[str, Any]) -> None:
        sink.cleanup()

    def on_cancel(reason: str | None) -> None:
        logger.info("Batch cancelled", extra={"reason": reason, "total_models": total_count})
        sink.cleanup()

    coordinator.on_display_result(on_display_result)
    coordinator.on_winner_completed(on_winner_completed)
    coordinator.on_model_completed(on_model_completed)
    coordinator.on_all_completed(on_all_completed)
    remove_cancel_listener = token.add_listener(on_cancel)

    logger.info(
        "Batch started",
        extra={"total_models": total_count, "models": [model.key for model in models]},
    )
    sink.start_initial_spinner()

    try:
        successful_count = await executor.execute_models_race(
            models, messages, coordinator, sink, token
        )
        cancelled = token.is_cancelled

        if successful_results and not cancelled and on_responses is not None:
            on_responses([result.response or "" for result in successful_results])

        if not cancelled:
            sink.display_summary(successful_count, total_count)

        return BatchOutcome(
            successful_count=successful_count,
            total_count=total_count,
            results=coordinator.results,
            cancelled=cancelled,
        )
    finally:
        remove_cancel_listener()
        sink.cleanup()
        coordinator.reset_state()
