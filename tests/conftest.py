"""Pytest configuration and shared fixtures."""

import os

import pytest

from multimodel.utils.batch_context import _batch_id_var, _model_key_var


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> None:
    """Set up test environment variables."""
    os.environ.setdefault("ENVIRONMENT", "test")
    os.environ.setdefault("LOG_LEVEL", "INFO")


@pytest.fixture(autouse=True)
def reset_batch_context() -> None:
    """Clear batch and model context between tests."""
    _batch_id_var.set(None)
    _model_key_var.set(None)
