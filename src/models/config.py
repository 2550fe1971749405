"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union


@dataclass
class VideoConfig:
    """Video source configuration."""
    device_id: Union[int, str] = 0
    rtsp_transport: str = "tcp"
    max_retries: int = 3
    rotate: int = 0
    swap_rb: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "VideoConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            rtsp_transport=d.get("rtsp_transport", "tcp"),
            max_retries=d.get("max_retries", 3),
            rotate=d.get("rotate", 0) or 0,
            swap_rb=d.get("swap_rb", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "rtsp_transport": self.rtsp_transport,
            "max_retries": self.max_retries,
            "rotate": self.rotate,
            "swap_rb": self.swap_rb,
        }


@dataclass
class RecognitionConfig:
    """Recognition backend configuration."""
    backend: str = "yolo"
    model: str = "yolov8n.pt"
    score_threshold: float = 0.05
    iou_threshold: float = 0.45
    max_boxes: int = 100
    class_mapping: Optional[Dict[str, str]] = None
    mock_seed: Optional[int] = None
    mock_load_delay: float = 1.5

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RecognitionConfig":
        return cls(
            backend=d.get("backend", "yolo"),
            model=d.get("model", "yolov8n.pt"),
            score_threshold=d.get("score_threshold", 0.05),
            iou_threshold=d.get("iou_threshold", 0.45),
            max_boxes=d.get("max_boxes", 100),
            class_mapping=d.get("class_mapping"),
            mock_seed=d.get("mock_seed"),
            mock_load_delay=d.get("mock_load_delay", 1.5),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "backend": self.backend,
            "model": self.model,
            "score_threshold": self.score_threshold,
            "iou_threshold": self.iou_threshold,
            "max_boxes": self.max_boxes,
            "mock_load_delay": self.mock_load_delay,
        }
        if self.class_mapping is not None:
            d["class_mapping"] = self.class_mapping
        if self.mock_seed is not None:
            d["mock_seed"] = self.mock_seed
        return d


@dataclass
class SchedulerConfig:
    """Frame scheduling configuration."""
    frame_skip: int = 2
    tick_interval: float = 1 / 30
    stats_log_interval: float = 60.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SchedulerConfig":
        return cls(
            frame_skip=d.get("frame_skip", 2),
            tick_interval=d.get("tick_interval", 1 / 30),
            stats_log_interval=d.get("stats_log_interval", 60.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame_skip": self.frame_skip,
            "tick_interval": self.tick_interval,
            "stats_log_interval": self.stats_log_interval,
        }


@dataclass
class AnomalyConfig:
    """
    Anomaly scoring configuration.

    rules maps a class name to a policy dict (see anomaly.rules.policy_from_dict).
    None keeps the built-in rule table.
    """
    history_window: float = 10.0
    interaction_score: float = 0.7
    proximity_factor: float = 2.0
    alert_threshold: float = 0.8
    default_rule: Optional[Dict[str, Any]] = None
    rules: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AnomalyConfig":
        return cls(
            history_window=d.get("history_window", 10.0),
            interaction_score=d.get("interaction_score", 0.7),
            proximity_factor=d.get("proximity_factor", 2.0),
            alert_threshold=d.get("alert_threshold", 0.8),
            default_rule=d.get("default_rule"),
            rules=d.get("rules"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "history_window": self.history_window,
            "interaction_score": self.interaction_score,
            "proximity_factor": self.proximity_factor,
            "alert_threshold": self.alert_threshold,
        }
        if self.default_rule is not None:
            d["default_rule"] = self.default_rule
        if self.rules is not None:
            d["rules"] = self.rules
        return d


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    video: VideoConfig = field(default_factory=VideoConfig)
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    anomaly: AnomalyConfig = field(default_factory=AnomalyConfig)
    log_path: str = "logs/video_anomaly.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            video=VideoConfig.from_dict(d.get("video", {}) or {}),
            recognition=RecognitionConfig.from_dict(d.get("recognition", {}) or {}),
            scheduler=SchedulerConfig.from_dict(d.get("scheduler", {}) or {}),
            anomaly=AnomalyConfig.from_dict(d.get("anomaly", {}) or {}),
            log_path=d.get("log_path", "logs/video_anomaly.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or merging)."""
        return {
            "video": self.video.to_dict(),
            "recognition": self.recognition.to_dict(),
            "scheduler": self.scheduler.to_dict(),
            "anomaly": self.anomaly.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
