"""
Observation layer for video inputs.

Abstracts where frames come from (file, webcam, stream) away from the frame
scheduler. Each source implements the VideoSource interface and returns
FrameData objects.
"""

from .base import VideoSource, VideoSourceConfig
from .opencv_source import OpenCVVideoSource, OpenCVSourceConfig, create_source_from_config

__all__ = [
    "VideoSource",
    "VideoSourceConfig",
    "OpenCVVideoSource",
    "OpenCVSourceConfig",
    "create_source_from_config",
]
