"""
Multi-model streaming race: sessions, executors, coordinator and batch runner.
"""

from multimodel.race.batch import run_batch
from multimodel.race.coordinator import MultiModelCoordinator
from multimodel.race.executor import ModelExecutor
from multimodel.race.session import ResponseSession, ResponseSessionFactory
from multimodel.race.sink import ConsoleSink, UISink

__all__ = [
    "ConsoleSink",
    "ModelExecutor",
    "MultiModelCoordinator",
    "ResponseSession",
    "ResponseSessionFactory",
    "UISink",
    "run_batch",
]
