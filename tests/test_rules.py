"""
Tests for the anomaly rule engine and rule policies.
"""

import random

import pytest

from anomaly.history import AnomalyHistoryWindow
from anomaly.rules import (
    AnomalyRuleEngine,
    DefaultPolicy,
    FixedOrConfidenceScaled,
    FrequencyGated,
    GeometricHeuristic,
    boxes_are_close,
    create_rule_engine_from_config,
    policy_from_dict,
)
from models.config import AnomalyConfig
from models.detection import BoundingBox, Detection


def far_apart(class_names, spacing=1000.0, size=60.0):
    """Detections spread out so no interaction fires."""
    return [
        Detection.from_xywh(i * spacing, 0, size, size, class_name=name, score=0.9)
        for i, name in enumerate(class_names)
    ]


class TestFrequencyGated:
    def test_zero_at_or_below_threshold(self, make_detection):
        policy = FrequencyGated(threshold=3, base=0.7, scale=10, cap=1.0)
        det = make_detection("pedestrian")
        for freq in range(0, 4):
            assert policy.evaluate(det, freq) == 0

    def test_flips_to_base_above_threshold(self, make_detection):
        policy = FrequencyGated(threshold=3, base=0.7, scale=10, cap=1.0)
        slow = FrequencyGated(threshold=3, base=0.7, scale=100, cap=1.0)
        assert slow.evaluate(make_detection("pedestrian"), 4) == pytest.approx(0.74)
        assert policy.evaluate(make_detection("pedestrian"), 4) == pytest.approx(1.0)

    def test_monotonic_and_saturating(self, make_detection):
        policy = FrequencyGated(threshold=3, base=0.7, scale=10, cap=1.0)
        det = make_detection("pedestrian")
        scores = [policy.evaluate(det, f) for f in range(0, 60)]
        assert all(b >= a for a, b in zip(scores, scores[1:]))
        assert max(scores) == pytest.approx(1.0)
        assert all(s >= 0.7 for s in scores[4:])


class TestFixedOrConfidenceScaled:
    def test_fixed(self, make_detection):
        policy = FixedOrConfidenceScaled(score=0.6)
        assert policy.evaluate(make_detection("car", score=0.99), 0) == 0.6
        assert policy.evaluate(make_detection("car", score=0.1), 50) == 0.6

    def test_confidence_scaled(self, make_detection):
        policy = FixedOrConfidenceScaled(score=0.6, confidence_threshold=0.8, high_score=0.8)
        assert policy.evaluate(make_detection("car", score=0.9), 0) == 0.8
        assert policy.evaluate(make_detection("car", score=0.8), 0) == 0.6


class TestGeometricHeuristic:
    def test_narrow_box_is_anomalous(self, make_detection):
        policy = GeometricHeuristic(max_width=50, score=0.75)
        assert policy.evaluate(make_detection("bicycle", w=30), 0) == 0.75
        assert policy.evaluate(make_detection("bicycle", w=50), 0) == 0
        assert policy.evaluate(make_detection("bicycle", w=120), 0) == 0


class TestDefaultPolicy:
    def test_rare_classes_flagged(self, make_detection):
        policy = DefaultPolicy(rarity_threshold=2, score=0.7)
        assert policy.evaluate(make_detection("dog"), 1) == 0.7
        assert policy.evaluate(make_detection("dog"), 2) == 0


class TestPolicyFromDict:
    def test_builds_each_variant(self):
        assert policy_from_dict({"policy": "frequency_gated", "threshold": 5}) == FrequencyGated(threshold=5)
        assert policy_from_dict({"policy": "fixed", "score": 0.9}) == FixedOrConfidenceScaled(score=0.9)
        assert policy_from_dict({"policy": "geometric", "max_width": 40}) == GeometricHeuristic(max_width=40)
        assert policy_from_dict({"policy": "default", "score": 0.5}) == DefaultPolicy(score=0.5)

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            policy_from_dict({"policy": "magic"})


class TestBoxesAreClose:
    def test_close_when_within_twice_average_size(self):
        a = BoundingBox.from_xywh(0, 0, 50, 50)
        b = BoundingBox.from_xywh(90, 0, 50, 50)  # centers 90 apart, limit 100
        assert boxes_are_close(a, b)

    def test_far(self):
        a = BoundingBox.from_xywh(0, 0, 50, 50)
        b = BoundingBox.from_xywh(100, 0, 50, 50)  # exactly at the limit
        assert not boxes_are_close(a, b)


class TestRuleEngine:
    def test_no_detections(self):
        result = AnomalyRuleEngine().evaluate([], {})
        assert result.has_anomaly is False
        assert result.anomaly_score == 0
        assert result.anomalies == ()

    def test_presence_rules(self):
        engine = AnomalyRuleEngine()
        dets = far_apart(["car", "bus"])
        result = engine.evaluate(dets, {"car": 10, "bus": 10})
        assert [(a.object, a.score) for a in result.anomalies] == [("car", 0.6), ("bus", 0.8)]
        assert result.anomalies[0].bbox == dets[0].bbox
        assert result.anomaly_score == pytest.approx(0.7)

    def test_default_rule_for_unregistered_class(self):
        engine = AnomalyRuleEngine()
        dets = far_apart(["dog"])
        assert engine.evaluate(dets, {"dog": 1}).anomalies[0].score == 0.7
        assert engine.evaluate(dets, {"dog": 2}).has_anomaly is False

    def test_zero_scores_are_not_anomalies(self):
        engine = AnomalyRuleEngine()
        result = engine.evaluate(far_apart(["pedestrian"]), {"pedestrian": 1})
        assert result.has_anomaly is False

    def test_interaction_between_different_classes(self):
        engine = AnomalyRuleEngine(rules={}, default_policy=DefaultPolicy(rarity_threshold=0))
        a = Detection.from_xywh(0, 0, 50, 50, class_name="car")
        b = Detection.from_xywh(40, 10, 50, 50, class_name="pedestrian")
        result = engine.evaluate([a, b], {})
        assert len(result.anomalies) == 1
        anomaly = result.anomalies[0]
        assert anomaly.object == "interaction:car_pedestrian"
        assert anomaly.bbox == a.bbox
        assert anomaly.score == 0.7

    def test_no_interaction_for_same_class(self):
        engine = AnomalyRuleEngine(rules={}, default_policy=DefaultPolicy(rarity_threshold=0))
        a = Detection.from_xywh(0, 0, 50, 50, class_name="car")
        b = Detection.from_xywh(1, 1, 50, 50, class_name="car")
        assert engine.evaluate([a, b], {}).anomalies == ()

    def test_interactions_per_unordered_pair(self):
        engine = AnomalyRuleEngine(rules={}, default_policy=DefaultPolicy(rarity_threshold=0))
        dets = [
            Detection.from_xywh(0, 0, 50, 50, class_name="car"),
            Detection.from_xywh(10, 0, 50, 50, class_name="bus"),
            Detection.from_xywh(20, 0, 50, 50, class_name="cart"),
        ]
        labels = [a.object for a in engine.evaluate(dets, {}).anomalies]
        assert labels == ["interaction:car_bus", "interaction:car_cart", "interaction:bus_cart"]

    def test_score_is_mean_for_random_sets(self):
        rng = random.Random(7)
        engine = AnomalyRuleEngine()
        classes = ["pedestrian", "car", "bus", "bicycle", "dog", "cart"]
        for _ in range(50):
            dets = [
                Detection.from_xywh(
                    rng.uniform(0, 800), rng.uniform(0, 600),
                    rng.uniform(10, 200), rng.uniform(10, 200),
                    class_name=rng.choice(classes), score=rng.uniform(0.05, 1.0),
                )
                for _ in range(rng.randint(0, 8))
            ]
            freqs = {c: rng.randint(0, 12) for c in classes}
            result = engine.evaluate(dets, freqs)
            scores = [a.score for a in result.anomalies]
            expected = sum(scores) / len(scores) if scores else 0
            assert result.anomaly_score == pytest.approx(expected)
            assert result.has_anomaly == bool(scores)

    def test_crowd_scenario(self):
        """Four pedestrians on top of six recent sightings trip the crowd rule."""
        history = AnomalyHistoryWindow(window=10.0)
        history.record(far_apart(["pedestrian"] * 6), now=95.0)
        frame = far_apart(["pedestrian"] * 4)
        history.record(frame, now=100.0)

        result = AnomalyRuleEngine().evaluate(frame, history.frequencies(now=100.0))

        assert result.has_anomaly is True
        pedestrians = [a for a in result.anomalies if a.object == "pedestrian"]
        assert len(pedestrians) == 4
        assert all(a.score >= 0.7 for a in pedestrians)


class TestCreateFromConfig:
    def test_uses_builtin_table_by_default(self):
        engine = create_rule_engine_from_config(AnomalyConfig())
        assert isinstance(engine.policy_for("pedestrian"), FrequencyGated)
        assert isinstance(engine.policy_for("bicycle"), GeometricHeuristic)
        assert engine.policy_for("dog") == DefaultPolicy()

    def test_configured_rules_replace_table(self):
        engine = create_rule_engine_from_config(AnomalyConfig(
            rules={"dog": {"policy": "fixed", "score": 0.9}},
            default_rule={"rarity_threshold": 5, "score": 0.4},
            interaction_score=0.5,
        ))
        assert engine.policy_for("dog") == FixedOrConfidenceScaled(score=0.9)
        assert engine.policy_for("pedestrian") == DefaultPolicy(rarity_threshold=5, score=0.4)
        assert engine.interaction_score == 0.5
