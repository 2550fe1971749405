"""
Anomaly models produced by the rule engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Tuple

from .detection import BoundingBox

INTERACTION_PREFIX = "interaction:"


@dataclass(frozen=True)
class Anomaly:
    """
    A scored flag derived from one or two detections.

    Attributes:
        object: Class label, or "interaction:<a>_<b>" for proximity anomalies.
        bbox: Bounding box of the (first) detection involved.
        score: Anomaly score (0-1).
    """
    object: str
    bbox: BoundingBox
    score: float

    @property
    def is_interaction(self) -> bool:
        return self.object.startswith(INTERACTION_PREFIX)

    def to_dict(self) -> dict:
        return {
            "object": self.object,
            "bbox": list(self.bbox.as_xywh()),
            "score": self.score,
        }


@dataclass(frozen=True)
class AnomalyResult:
    """
    Consolidated result for one analyzed frame.

    anomaly_score is the mean of the anomaly scores (0.0 when there are none)
    and has_anomaly is True iff at least one rule fired.
    """
    has_anomaly: bool = False
    anomaly_score: float = 0.0
    anomalies: Tuple[Anomaly, ...] = field(default_factory=tuple)

    @classmethod
    def from_anomalies(cls, anomalies: Iterable[Anomaly]) -> "AnomalyResult":
        items = tuple(anomalies)
        if not items:
            return cls.empty()
        return cls(
            has_anomaly=True,
            anomaly_score=sum(a.score for a in items) / len(items),
            anomalies=items,
        )

    @classmethod
    def empty(cls) -> "AnomalyResult":
        return cls()

    def above_threshold(self, threshold: float) -> "AnomalyResult":
        """
        Consumer-side view of this result with a secondary threshold applied.

        Keeps only anomalies scoring above ``threshold`` and flags the frame
        only when the overall score exceeds it. The overall score itself is
        left unchanged.
        """
        return AnomalyResult(
            has_anomaly=self.anomaly_score > threshold,
            anomaly_score=self.anomaly_score,
            anomalies=tuple(a for a in self.anomalies if a.score > threshold),
        )

    def to_dict(self) -> dict:
        return {
            "hasAnomaly": self.has_anomaly,
            "anomalyScore": self.anomaly_score,
            "anomalies": [a.to_dict() for a in self.anomalies],
        }
