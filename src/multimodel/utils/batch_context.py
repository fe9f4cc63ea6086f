"""
Batch context management using contextvars.

Provides context variables for tracking the current batch and model across
async operations. Each executor runs in its own task, so the model key set
inside an executor never leaks into its siblings.
"""

from contextvars import ContextVar

_batch_id_var: ContextVar[str | None] = ContextVar("batch_id", default=None)
_model_key_var: ContextVar[str | None] = ContextVar("model_key", default=None)


def set_batch_id(batch_id: str) -> None:
    """
    Set the current batch ID in context.

    Args:
        batch_id: The batch ID to store in context
    """
    _batch_id_var.set(batch_id)


def get_batch_id() -> str | None:
    """
    Get the current batch ID from context.

    Returns:
        The stored batch ID, or None if not set
    """
    return _batch_id_var.get()


def set_model_key(model_key: str) -> None:
    """Set the `provider:model` key of the executor running in this context."""
    _model_key_var.set(model_key)


def get_model_key() -> str | None:
    """Get the `provider:model` key of the current executor, if any."""
    return _model_key_var.get()
