"""
Detection models for object recognition results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in pixel coordinates.

    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    def as_xywh(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x1, self.y1, self.width, self.height)

    def distance_to(self, other: "BoundingBox") -> float:
        """Euclidean distance between the two box centers."""
        (cx1, cy1), (cx2, cy2) = self.center, other.center
        return float(np.hypot(cx2 - cx1, cy2 - cy1))

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> "BoundingBox":
        """Create from (x, y, width, height) format."""
        return cls(x1=x, y1=y, x2=x + w, y2=y + h)


@dataclass(frozen=True)
class Detection:
    """
    A single recognized object in one analyzed frame.

    Attributes:
        bbox: Bounding box in pixel coordinates.
        class_name: Normalized class label (e.g. "pedestrian").
        score: Recognition confidence (0-1).
    """
    bbox: BoundingBox
    class_name: str
    score: float = 1.0

    @classmethod
    def from_xywh(
        cls,
        x: float,
        y: float,
        w: float,
        h: float,
        class_name: str,
        score: float = 1.0,
    ) -> "Detection":
        """Create Detection from x, y, width, height coordinates."""
        return cls(
            bbox=BoundingBox.from_xywh(x, y, w, h),
            class_name=class_name,
            score=score,
        )

    def to_dict(self) -> dict:
        return {
            "bbox": list(self.bbox.as_xywh()),
            "class": self.class_name,
            "score": self.score,
        }


def count_by_class(detections: Sequence[Detection]) -> dict:
    """Count detections per class, in first-seen order."""
    counts: dict = {}
    for det in detections:
        counts[det.class_name] = counts.get(det.class_name, 0) + 1
    return counts
