"""
Anomaly scoring: rolling class-frequency history and the rule engine.
"""

from .history import AnomalyHistoryWindow, HistoryEntry
from .rules import (
    AnomalyRuleEngine,
    DefaultPolicy,
    FixedOrConfidenceScaled,
    FrequencyGated,
    GeometricHeuristic,
    RulePolicy,
    boxes_are_close,
    create_rule_engine_from_config,
    policy_from_dict,
)

__all__ = [
    "AnomalyHistoryWindow",
    "HistoryEntry",
    "AnomalyRuleEngine",
    "RulePolicy",
    "FrequencyGated",
    "FixedOrConfidenceScaled",
    "GeometricHeuristic",
    "DefaultPolicy",
    "boxes_are_close",
    "create_rule_engine_from_config",
    "policy_from_dict",
]
