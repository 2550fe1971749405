"""
Mock inference backend.

Produces 1-5 random boxes per frame with COCO labels so the pipeline can be
exercised end to end without model weights.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .backend import InferenceBackend, RawPrediction

MOCK_CLASSES = (
    "person", "bicycle", "car", "motorcycle", "bus", "truck",
    "traffic light", "fire hydrant", "stop sign", "cat", "dog",
)


@dataclass(frozen=True)
class MockConfig:
    seed: Optional[int] = None
    load_delay: float = 1.5
    classes: Sequence[str] = MOCK_CLASSES
    max_per_frame: int = 5


class MockBackend(InferenceBackend):
    def __init__(self, cfg: MockConfig = MockConfig()):
        self.cfg = cfg
        self._rng = np.random.default_rng(cfg.seed)
        self._loaded = False

    async def load(self) -> None:
        logging.info("Loading mock detection model...")
        await asyncio.sleep(self.cfg.load_delay)
        self._loaded = True
        logging.info("Mock detection model loaded")

    async def predict(self, frame: np.ndarray, max_boxes: int) -> List[RawPrediction]:
        if not self._loaded:
            raise RuntimeError("Model not loaded")

        height, width = frame.shape[:2]
        if not width or not height:
            return []

        count = int(self._rng.integers(1, self.cfg.max_per_frame + 1))
        out: List[RawPrediction] = []
        for _ in range(min(count, max_boxes)):
            box_w = int(self._rng.integers(0, max(1, int(width * 0.5)))) + 50
            box_h = int(self._rng.integers(0, max(1, int(height * 0.5)))) + 50
            x = int(self._rng.integers(0, max(1, width - box_w)))
            y = int(self._rng.integers(0, max(1, height - box_h)))
            out.append(
                RawPrediction(
                    bbox=(float(x), float(y), float(box_w), float(box_h)),
                    class_name=str(self._rng.choice(self.cfg.classes)),
                    score=float(0.6 + self._rng.random() * 0.4),
                )
            )
        return out

    def close(self) -> None:
        self._loaded = False
