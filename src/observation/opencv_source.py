"""
OpenCV-based video source.

Supports:
- Video files (device_id as file path)
- USB webcams (device_id as int, e.g., 0)
- RTSP/IP cameras (device_id as str URL)
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import urlparse

import cv2
import numpy as np

from models.config import VideoConfig
from models.frame import FrameData
from .base import VideoSource, VideoSourceConfig


def sanitize_url(device_id: Union[int, str]) -> str:
    """Hide credentials embedded in a stream URL before logging it."""
    if not isinstance(device_id, str) or "@" not in device_id:
        return str(device_id)
    parsed = urlparse(device_id)
    host = parsed.hostname or ""
    if parsed.port:
        host += f":{parsed.port}"
    return f"{parsed.scheme}://***@{host}{parsed.path}"


@dataclass
class OpenCVSourceConfig(VideoSourceConfig):
    """
    Configuration for OpenCV-based video sources.

    Attributes:
        device_id: Camera index (int), RTSP URL (str), or file path (str).
        rtsp_transport: Transport protocol for RTSP ("tcp" or "udp").
        max_retries: Maximum retries when opening the capture.
        rotate: Rotation in degrees (0, 90, 180, 270).
        swap_rb: Swap R/B channels (fixes RGB vs BGR issues).
    """
    device_id: Union[int, str] = 0
    rtsp_transport: str = "tcp"
    max_retries: int = 3
    rotate: int = 0
    swap_rb: bool = False

    @classmethod
    def from_video_config(cls, video_cfg: VideoConfig, source_id: str = "video") -> "OpenCVSourceConfig":
        """Adapter: Create OpenCVSourceConfig from the typed video config."""
        return cls(
            source_id=source_id,
            device_id=video_cfg.device_id,
            rtsp_transport=video_cfg.rtsp_transport,
            max_retries=video_cfg.max_retries,
            rotate=video_cfg.rotate,
            swap_rb=video_cfg.swap_rb,
        )


class OpenCVVideoSource(VideoSource):
    """
    Wraps cv2.VideoCapture to provide frames as FrameData objects.

    Example:
        config = OpenCVSourceConfig(device_id="samples/plaza.mp4")
        source = OpenCVVideoSource(config)
        source.open()
        while source.is_ready():
            frame_data = source.read()
        source.close()
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_rtsp(self) -> bool:
        return isinstance(self.device_id, str) and self.device_id.startswith(("rtsp://", "rtsps://"))

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and not self.is_rtsp and os.path.exists(self.device_id)

    @property
    def width(self) -> int:
        if self._cap is None:
            return 0
        return int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)

    @property
    def height(self) -> int:
        if self._cap is None:
            return 0
        return int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)

    def is_ready(self) -> bool:
        return super().is_ready() and self._cap is not None and self._cap.isOpened()

    def open(self) -> None:
        if self._is_open:
            return

        if self.is_rtsp:
            os.environ["OPENCV_FFMPEG_CAPTURE_OPTIONS"] = (
                f"rtsp_transport;{self._opencv_config.rtsp_transport}"
            )

        for attempt in range(1, self._opencv_config.max_retries + 1):
            self._cap = cv2.VideoCapture(self.device_id)
            if self._cap.isOpened():
                break
            self._cap.release()
            self._cap = None
            logging.warning(
                f"Failed to open {sanitize_url(self.device_id)} "
                f"(attempt {attempt}/{self._opencv_config.max_retries})"
            )
            if attempt < self._opencv_config.max_retries:
                time.sleep(min(2 ** attempt, 10))

        if self._cap is None:
            raise RuntimeError(
                f"Failed to open device {sanitize_url(self.device_id)} after "
                f"{self._opencv_config.max_retries} attempts"
            )

        self._is_open = True
        self._ended = False
        self._frame_index = 0
        logging.info(
            f"OpenCVVideoSource opened: source_id={self.source_id}, "
            f"device={sanitize_url(self.device_id)}, size={self.width}x{self.height}"
        )

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._cap is None or self._ended:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            if self.is_file:
                logging.info("End of video file reached")
                self._ended = True
            else:
                logging.warning("Failed to read frame from stream")
            return None

        frame = self._apply_transforms(frame)
        self._frame_index += 1
        return FrameData.from_numpy(
            frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def _apply_transforms(self, frame: np.ndarray) -> np.ndarray:
        cfg = self._opencv_config

        if cfg.rotate == 90:
            frame = cv2.rotate(frame, cv2.ROTATE_90_CLOCKWISE)
        elif cfg.rotate == 180:
            frame = cv2.rotate(frame, cv2.ROTATE_180)
        elif cfg.rotate == 270:
            frame = cv2.rotate(frame, cv2.ROTATE_90_COUNTERCLOCKWISE)

        if cfg.swap_rb:
            frame = frame[..., ::-1].copy()

        return frame

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._is_open = False
        logging.info(f"OpenCVVideoSource closed: source_id={self.source_id}")


def create_source_from_config(video_cfg: VideoConfig, source_id: str = "video") -> OpenCVVideoSource:
    return OpenCVVideoSource(OpenCVSourceConfig.from_video_config(video_cfg, source_id=source_id))
