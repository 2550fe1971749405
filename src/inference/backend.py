"""
Inference backend interface.

Backends return raw, vendor-labelled predictions in the input frame's
pixel space. Label normalization and filtering happen in the adapter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol, Tuple

import numpy as np


@dataclass(frozen=True)
class RawPrediction:
    bbox: Tuple[float, float, float, float]  # x, y, width, height
    class_name: str
    score: float


class InferenceBackend(Protocol):
    async def load(self) -> None:
        ...

    async def predict(self, frame: np.ndarray, max_boxes: int) -> List[RawPrediction]:
        ...

    def close(self) -> None:
        ...
