"""
CPU inference backend.

Uses Ultralytics if installed. Inference is blocking, so each call runs in a
worker thread and the event loop keeps ticking while a frame is analyzed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np

from .backend import InferenceBackend, RawPrediction


@dataclass(frozen=True)
class CpuYoloConfig:
    model: str
    conf_threshold: float = 0.05
    iou_threshold: float = 0.45


class UltralyticsCpuBackend(InferenceBackend):
    def __init__(self, cfg: CpuYoloConfig):
        self.cfg = cfg
        self._model: Optional[Any] = None

    async def load(self) -> None:
        try:
            from ultralytics import YOLO  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "Ultralytics is not installed. Install with `pip install ultralytics` "
                "or switch recognition.backend to 'mock'."
            ) from e

        logging.info(f"Loading YOLO model: {self.cfg.model}")
        self._model = await asyncio.to_thread(YOLO, self.cfg.model)

    async def predict(self, frame: np.ndarray, max_boxes: int) -> List[RawPrediction]:
        if self._model is None:
            raise RuntimeError("Model not loaded")
        return await asyncio.to_thread(self._predict_sync, frame, max_boxes)

    def _predict_sync(self, frame: np.ndarray, max_boxes: int) -> List[RawPrediction]:
        results = self._model.predict(
            source=frame,
            conf=self.cfg.conf_threshold,
            iou=self.cfg.iou_threshold,
            max_det=max_boxes,
            verbose=False,
        )
        if not results:
            return []

        r0 = results[0]
        names = getattr(r0, "names", None) or {}
        boxes = getattr(r0, "boxes", None)
        if boxes is None:
            return []

        xyxy = boxes.xyxy.cpu().numpy() if hasattr(boxes.xyxy, "cpu") else np.asarray(boxes.xyxy)
        conf = boxes.conf.cpu().numpy() if hasattr(boxes.conf, "cpu") else np.asarray(boxes.conf)
        cls = boxes.cls.cpu().numpy() if hasattr(boxes.cls, "cpu") else np.asarray(boxes.cls)

        out: List[RawPrediction] = []
        for (x1, y1, x2, y2), c, k in zip(xyxy, conf, cls):
            class_id = int(k)
            out.append(
                RawPrediction(
                    bbox=(float(x1), float(y1), float(x2 - x1), float(y2 - y1)),
                    class_name=names.get(class_id) or str(class_id),
                    score=float(c),
                )
            )

        return out

    def close(self) -> None:
        self._model = None
