"""
Anomaly rule engine.

Each class is scored by a RulePolicy strategy. Classes without a registered
policy fall back to a rarity rule: a class seldom seen in the recent history
window is treated as suspicious. A second pass flags spatial interactions
between differently classed detections.

Policies:
- FrequencyGated: crowding. Zero up to a frequency threshold, then a
  saturating curve from ``base`` up to ``cap``.
- FixedOrConfidenceScaled: presence. A fixed score, optionally raised for
  high-confidence detections.
- GeometricHeuristic: motion proxy. Narrow boxes read as fast movers.
- DefaultPolicy: rarity. Fires while the class frequency stays low.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from models.anomaly import INTERACTION_PREFIX, Anomaly, AnomalyResult
from models.config import AnomalyConfig
from models.detection import BoundingBox, Detection


class RulePolicy(ABC):
    """Scores one detection given its class frequency in the history window."""

    @abstractmethod
    def evaluate(self, detection: Detection, frequency: int) -> float:
        """Return an anomaly score in [0, 1]; 0 means no anomaly."""
        pass


@dataclass(frozen=True)
class FrequencyGated(RulePolicy):
    threshold: int = 3
    base: float = 0.7
    scale: float = 10.0
    cap: float = 1.0

    def evaluate(self, detection: Detection, frequency: int) -> float:
        if frequency <= self.threshold:
            return 0.0
        return self.base + min(frequency / self.scale, self.cap - self.base)


@dataclass(frozen=True)
class FixedOrConfidenceScaled(RulePolicy):
    score: float = 0.6
    confidence_threshold: Optional[float] = None
    high_score: Optional[float] = None

    def evaluate(self, detection: Detection, frequency: int) -> float:
        if (
            self.confidence_threshold is not None
            and self.high_score is not None
            and detection.score > self.confidence_threshold
        ):
            return self.high_score
        return self.score


@dataclass(frozen=True)
class GeometricHeuristic(RulePolicy):
    max_width: float = 50.0
    score: float = 0.75

    def evaluate(self, detection: Detection, frequency: int) -> float:
        return self.score if detection.bbox.width < self.max_width else 0.0


@dataclass(frozen=True)
class DefaultPolicy(RulePolicy):
    rarity_threshold: int = 2
    score: float = 0.7

    def evaluate(self, detection: Detection, frequency: int) -> float:
        return self.score if frequency < self.rarity_threshold else 0.0


DEFAULT_RULES: Dict[str, RulePolicy] = {
    "pedestrian": FrequencyGated(threshold=3, base=0.7, scale=10.0, cap=1.0),
    "car": FixedOrConfidenceScaled(score=0.6),
    "bus": FixedOrConfidenceScaled(score=0.8),
    "truck": FixedOrConfidenceScaled(score=0.7),
    "motorcycle": FixedOrConfidenceScaled(score=0.7),
    "traffic light": FixedOrConfidenceScaled(score=0.5),
    "skateboarder": FixedOrConfidenceScaled(score=0.6),
    "cart": FixedOrConfidenceScaled(score=0.5),
    "bicycle": GeometricHeuristic(max_width=50.0, score=0.75),
}

_POLICY_TYPES = {
    "frequency_gated": FrequencyGated,
    "fixed": FixedOrConfidenceScaled,
    "geometric": GeometricHeuristic,
    "default": DefaultPolicy,
}


def policy_from_dict(d: Mapping[str, Any]) -> RulePolicy:
    """
    Build a policy from a config dict.

    Example:
        {"policy": "frequency_gated", "threshold": 3, "base": 0.7, "scale": 10}
    """
    params = dict(d)
    kind = params.pop("policy", None)
    if kind not in _POLICY_TYPES:
        raise ValueError(
            f"Unknown rule policy {kind!r}; expected one of: {', '.join(_POLICY_TYPES)}"
        )
    return _POLICY_TYPES[kind](**params)


def boxes_are_close(a: BoundingBox, b: BoundingBox, factor: float = 2.0) -> bool:
    """Centers closer than ``factor`` times the mean of the four box dimensions."""
    avg_size = (a.width + a.height + b.width + b.height) / 4
    return a.distance_to(b) < avg_size * factor


class AnomalyRuleEngine:
    """
    Turns a frame's detections plus class frequencies into an AnomalyResult.

    The engine is stateless; frequencies come from AnomalyHistoryWindow.
    """

    def __init__(
        self,
        rules: Optional[Mapping[str, RulePolicy]] = None,
        default_policy: Optional[RulePolicy] = None,
        interaction_score: float = 0.7,
        proximity_factor: float = 2.0,
    ):
        self.rules: Dict[str, RulePolicy] = dict(DEFAULT_RULES if rules is None else rules)
        self.default_policy = default_policy or DefaultPolicy()
        self.interaction_score = interaction_score
        self.proximity_factor = proximity_factor

    def policy_for(self, class_name: str) -> RulePolicy:
        return self.rules.get(class_name, self.default_policy)

    def evaluate(
        self, detections: Sequence[Detection], frequencies: Mapping[str, int]
    ) -> AnomalyResult:
        anomalies: List[Anomaly] = []

        for det in detections:
            frequency = frequencies.get(det.class_name, 0)
            score = self.policy_for(det.class_name).evaluate(det, frequency)
            if score > 0:
                anomalies.append(Anomaly(object=det.class_name, bbox=det.bbox, score=score))

        anomalies.extend(self._interactions(detections))

        result = AnomalyResult.from_anomalies(anomalies)
        if result.has_anomaly:
            logging.debug(
                f"[ANOMALY] count={len(result.anomalies)} score={result.anomaly_score:.2f}"
            )
        return result

    def _interactions(self, detections: Sequence[Detection]) -> List[Anomaly]:
        # O(n^2); per-frame detection counts are capped by the adapter.
        out: List[Anomaly] = []
        for i in range(len(detections)):
            for j in range(i + 1, len(detections)):
                a, b = detections[i], detections[j]
                if a.class_name == b.class_name:
                    continue
                if boxes_are_close(a.bbox, b.bbox, self.proximity_factor):
                    out.append(
                        Anomaly(
                            object=f"{INTERACTION_PREFIX}{a.class_name}_{b.class_name}",
                            bbox=a.bbox,
                            score=self.interaction_score,
                        )
                    )
        return out


def create_rule_engine_from_config(cfg: AnomalyConfig) -> AnomalyRuleEngine:
    rules = None
    if cfg.rules is not None:
        rules = {name: policy_from_dict(d) for name, d in cfg.rules.items()}
    default_policy = None
    if cfg.default_rule:
        default_policy = policy_from_dict({"policy": "default", **cfg.default_rule})
    return AnomalyRuleEngine(
        rules=rules,
        default_policy=default_policy,
        interaction_score=cfg.interaction_score,
        proximity_factor=cfg.proximity_factor,
    )
