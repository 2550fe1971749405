"""
Recognition layer: pluggable inference backends behind a single adapter.
"""

from .backend import InferenceBackend, RawPrediction
from .adapter import (
    DEFAULT_CLASS_MAPPING,
    RecognitionAdapter,
    create_adapter_from_config,
    create_backend,
)

__all__ = [
    "InferenceBackend",
    "RawPrediction",
    "DEFAULT_CLASS_MAPPING",
    "RecognitionAdapter",
    "create_adapter_from_config",
    "create_backend",
]
