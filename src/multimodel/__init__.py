"""
multimodel: race one prompt across several language models
"""

__version__ = "0.1.0"

from multimodel.config import Settings
from multimodel.race.batch import run_batch
from multimodel.utils.cancellation import CancellationToken

__all__ = ["CancellationToken", "Settings", "run_batch", "__version__"]
