"""
Multi-model coordinator: the single per-batch arbiter of a race.

Grants winner status to exactly one model, tracks completions, and fans out
aggregate events so presentation code never polls. One coordinator belongs to
one batch; reset_state() clears it between batches.
"""

import asyncio
import threading
from collections.abc import Awaitable
from typing import Any

from multimodel.models.events import CoordinatorEvent
from multimodel.models.internal import ModelResult, ProviderModel
from multimodel.utils.errors import PreconditionError
from multimodel.utils.events import EventEmitter, EventHandler, Unsubscribe
from multimodel.utils.logging import get_logger

logger = get_logger(__name__)


class MultiModelCoordinator:
    """
    Winner selection and completion bookkeeping for one batch.

    Invariants:
    - the winner is assigned at most once per batch and never changes
    - the completed count never exceeds the registered count
    - `all:completed` is emitted exactly once, when the last model reports

    Non-winner results that finish while the winner is still streaming are
    queued and flushed, in completion order, right after the winner completes.
    """

    def __init__(self) -> None:
        self._events = EventEmitter(CoordinatorEvent, owner="coordinator")
        # asyncio callbacks never preempt each other; the lock keeps set_winner
        # exactly-once if a transport ever reports from a worker thread
        self._winner_lock = threading.Lock()
        self._all_completed = asyncio.Event()
        self._init_state()

    def _init_state(self) -> None:
        self._models: dict[str, tuple[ProviderModel, Awaitable[Any] | None]] = {}
        self._winner: ProviderModel | None = None
        self._winner_streaming = False
        self._completed: set[str] = set()
        self._results: dict[str, ModelResult] = {}
        self._pending_results: list[ModelResult] = []
        self._all_completed_emitted = False

    def reset_state(self) -> None:
        """Clear every per-batch field. Subscriptions are kept."""
        # Release anyone still waiting on the previous batch
        self._all_completed.set()
        self._all_completed = asyncio.Event()
        self._init_state()
        logger.debug("Coordinator: State reset")

    def register_model(self, model: ProviderModel, awaitable: Awaitable[Any] | None = None) -> None:
        """
        Record a race participant before it is awaited.

        Raises:
            PreconditionError: If the model is already registered, or the batch
                has already completed
        """
        if model.key in self._models:
            raise PreconditionError(f"Model {model.key} is already registered")
        if self._all_completed_emitted:
            raise PreconditionError("Batch already completed; call reset_state() first")

        self._models[model.key] = (model, awaitable)
        logger.debug(f"Coordinator: Registered model {model.key}")

    def set_winner(self, model: ProviderModel) -> bool:
        """
        Claim the winner slot.

        Returns:
            True for the first caller of the batch, False for every later caller
        """
        with self._winner_lock:
            if self._winner is not None:
                return False
            self._winner = model
            self._winner_streaming = True

        logger.debug(f"Coordinator: Winner selected - {model.key}")
        self._events.emit(CoordinatorEvent.WINNER_SELECTED, model=model)
        return True

    def complete_model(self, model: ProviderModel, result: ModelResult) -> None:
        """
        Record a participant's final result and fan out completion events.

        Raises:
            PreconditionError: If the model was never registered or already completed
        """
        key = model.key
        if key not in self._models:
            raise PreconditionError(f"Model {key} was never registered with this coordinator")
        if key in self._completed:
            raise PreconditionError(f"Model {key} has already completed")

        self._completed.add(key)
        self._results[key] = result
        is_winner = self._winner is not None and self._winner.key == key

        logger.debug(
            f"Coordinator: Model completed - {key}",
            extra={"success": result.success, "is_winner": is_winner},
        )

        if is_winner:
            self._winner_streaming = False
            self._events.emit(CoordinatorEvent.WINNER_COMPLETED, model=model, result=result)

            pending, self._pending_results = self._pending_results, []
            for queued in pending:
                self._events.emit(CoordinatorEvent.DISPLAY_RESULT, result=queued)
        elif self._winner_streaming:
            self._pending_results.append(result)
            logger.debug(f"Coordinator: Queued result for {key}")
        else:
            self._events.emit(CoordinatorEvent.DISPLAY_RESULT, result=result)

        self._events.emit(
            CoordinatorEvent.MODEL_COMPLETED, model=model, result=result, is_winner=is_winner
        )

        remaining = self.get_remaining_count()
        self._events.emit(CoordinatorEvent.REMAINING_COUNT_CHANGED, remaining_count=remaining)

        if remaining == 0 and not self._all_completed_emitted:
            self._all_completed_emitted = True
            self._all_completed.set()
            successful = self.get_successful_count()
            logger.debug(
                "Coordinator: All models completed",
                extra={"total_models": len(self._models), "successful_models": successful},
            )
            self._events.emit(
                CoordinatorEvent.ALL_COMPLETED,
                total_models=len(self._models),
                successful_models=successful,
            )

    async def wait_all_completed(self) -> None:
        """Suspend until every registered model has completed."""
        if self.is_all_completed():
            return
        await self._all_completed.wait()

    # State queries

    def get_remaining_count(self) -> int:
        return len(self._models) - len(self._completed)

    def get_completed_count(self) -> int:
        return len(self._completed)

    def get_successful_count(self) -> int:
        return sum(1 for result in self._results.values() if result.success)

    def is_all_completed(self) -> bool:
        return len(self._models) == len(self._completed)

    @property
    def winner_model(self) -> ProviderModel | None:
        return self._winner

    @property
    def is_winner_streaming(self) -> bool:
        return self._winner_streaming

    @property
    def total_models(self) -> int:
        return len(self._models)

    @property
    def results(self) -> list[ModelResult]:
        """Completed results in registration order."""
        return [self._results[key] for key in self._models if key in self._results]

    # Subscriptions

    def on_winner_selected(self, handler: EventHandler) -> Unsubscribe:
        return self._events.on(CoordinatorEvent.WINNER_SELECTED, handler)

    def on_winner_completed(self, handler: EventHandler) -> Unsubscribe:
        return self._events.on(CoordinatorEvent.WINNER_COMPLETED, handler)

    def on_model_completed(self, handler: EventHandler) -> Unsubscribe:
        return self._events.on(CoordinatorEvent.MODEL_COMPLETED, handler)

    def on_display_result(self, handler: EventHandler) -> Unsubscribe:
        return self._events.on(CoordinatorEvent.DISPLAY_RESULT, handler)

    def on_remaining_count_changed(self, handler: EventHandler) -> Unsubscribe:
        return self._events.on(CoordinatorEvent.REMAINING_COUNT_CHANGED, handler)

    def on_all_completed(self, handler: EventHandler) -> Unsubscribe:
        return self._events.on(CoordinatorEvent.ALL_COMPLETED, handler)
