"""
Typed models for the video anomaly pipeline.

Detections, anomalies and frames are immutable value objects created fresh
for every analyzed frame.
"""

from .frame import FrameData
from .detection import Detection, BoundingBox, count_by_class
from .anomaly import Anomaly, AnomalyResult, INTERACTION_PREFIX
from .errors import PipelineError, ModelLoadError, DetectionError, InvalidFrameError
from .config import (
    Config,
    VideoConfig,
    RecognitionConfig,
    SchedulerConfig,
    AnomalyConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "BoundingBox",
    "count_by_class",
    # Anomaly
    "Anomaly",
    "AnomalyResult",
    "INTERACTION_PREFIX",
    # Errors
    "PipelineError",
    "ModelLoadError",
    "DetectionError",
    "InvalidFrameError",
    # Config
    "Config",
    "VideoConfig",
    "RecognitionConfig",
    "SchedulerConfig",
    "AnomalyConfig",
]
