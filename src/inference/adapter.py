"""
Recognition adapter.

Wraps any InferenceBackend behind a uniform async contract:

    adapter = RecognitionAdapter(backend)
    await adapter.load()
    detections = await adapter.detect(frame)

Vendor (COCO) labels are remapped into the scene vocabulary used by the
anomaly rules; unmapped labels pass through unchanged. Predictions keep the
order the backend returned them in.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import numpy as np

from models.config import RecognitionConfig
from models.detection import BoundingBox, Detection
from models.errors import DetectionError, InvalidFrameError, ModelLoadError
from .backend import InferenceBackend

DEFAULT_CLASS_MAPPING: Dict[str, str] = {
    "person": "pedestrian",
    "bicycle": "bicycle",
    "motorcycle": "bicycle",
    "car": "car",
    "truck": "car",
    "bus": "bus",
    "skateboard": "skateboarder",
}


class RecognitionAdapter:
    def __init__(
        self,
        backend: InferenceBackend,
        score_threshold: float = 0.05,
        max_boxes: int = 100,
        class_mapping: Optional[Dict[str, str]] = None,
    ):
        self._backend = backend
        self.score_threshold = score_threshold
        self.max_boxes = max_boxes
        self.class_mapping = dict(DEFAULT_CLASS_MAPPING if class_mapping is None else class_mapping)
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    def normalize_label(self, label: str) -> str:
        return self.class_mapping.get(label, label)

    async def load(self) -> None:
        """
        Load the underlying model.

        Raises:
            ModelLoadError: If the backend failed to initialize.
        """
        self._ready = False
        try:
            await self._backend.load()
        except Exception as e:
            raise ModelLoadError(f"Failed to load recognition model: {e}") from e
        self._ready = True

    async def detect(self, frame: np.ndarray) -> List[Detection]:
        """
        Run recognition on one frame.

        Raises:
            InvalidFrameError: If the frame has zero width or height.
            DetectionError: If the model is not ready or the backend failed.
        """
        if frame is None or frame.ndim < 2 or frame.shape[0] == 0 or frame.shape[1] == 0:
            raise InvalidFrameError("Frame has no usable pixel dimensions")
        if not self._ready:
            raise DetectionError("Model not loaded yet")

        try:
            predictions = await self._backend.predict(frame, self.max_boxes)
        except Exception as e:
            raise DetectionError(f"Recognition failed: {e}") from e

        detections: List[Detection] = []
        for p in predictions:
            if p.score < self.score_threshold:
                continue
            detections.append(
                Detection(
                    bbox=BoundingBox.from_xywh(*p.bbox),
                    class_name=self.normalize_label(p.class_name),
                    score=p.score,
                )
            )
            if len(detections) >= self.max_boxes:
                break

        logging.debug(f"Raw predictions: {len(predictions)}, after filtering: {len(detections)}")
        return detections

    def close(self) -> None:
        self._ready = False
        self._backend.close()


def create_backend(cfg: RecognitionConfig) -> InferenceBackend:
    """Select an inference backend by name ('yolo' or 'mock')."""
    if cfg.backend == "yolo":
        from .cpu_backend import CpuYoloConfig, UltralyticsCpuBackend

        return UltralyticsCpuBackend(
            CpuYoloConfig(
                model=cfg.model,
                conf_threshold=cfg.score_threshold,
                iou_threshold=cfg.iou_threshold,
            )
        )
    if cfg.backend == "mock":
        from .mock_backend import MockBackend, MockConfig

        return MockBackend(MockConfig(seed=cfg.mock_seed, load_delay=cfg.mock_load_delay))
    raise ValueError(f"Unknown recognition backend: {cfg.backend}")


def create_adapter_from_config(cfg: RecognitionConfig) -> RecognitionAdapter:
    return RecognitionAdapter(
        create_backend(cfg),
        score_threshold=cfg.score_threshold,
        max_boxes=cfg.max_boxes,
        class_mapping=cfg.class_mapping,
    )
