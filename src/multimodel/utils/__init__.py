"""
Utility modules for multimodel.

This module provides error handling, logging, cancellation and event helpers.
"""

from multimodel.utils.cancellation import CancellationToken
from multimodel.utils.errors import (
    ConfigurationError,
    ExternalServiceError,
    MultiModelError,
    PreconditionError,
    TransportError,
)
from multimodel.utils.events import EventEmitter
from multimodel.utils.logging import get_logger, setup_logging

__all__ = [
    # Errors
    "MultiModelError",
    "ConfigurationError",
    "PreconditionError",
    "ExternalServiceError",
    "TransportError",
    # Logging
    "get_logger",
    "setup_logging",
    # Concurrency primitives
    "CancellationToken",
    "EventEmitter",
]
