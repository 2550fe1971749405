"""
Pipeline module for the video anomaly detector.

The pipeline orchestrates the full flow:
- Frame sampling (FrameScheduler)
- Object recognition (RecognitionAdapter)
- Frequency history and anomaly scoring
- Result delivery to the caller
"""

from .engine import DetectionPipeline, create_pipeline_from_config

__all__ = [
    "DetectionPipeline",
    "create_pipeline_from_config",
]
