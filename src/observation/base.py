"""
VideoSource interface for pluggable video inputs.

This defines the video handle the frame scheduler polls on every tick:
- readiness (enough data buffered to hand out a frame)
- pixel dimensions
- frame pixel access
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from models.frame import FrameData


@dataclass
class VideoSourceConfig:
    """
    Base configuration for video sources.

    Attributes:
        source_id: Unique identifier for this source (e.g., "cam-01", "sample-video").
    """
    source_id: str = "default"


class VideoSource(ABC):
    """
    Abstract base class for video sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source
        3. Poll is_ready() and call read() to advance playback
        4. Call close() to release resources
    """

    def __init__(self, config: VideoSourceConfig):
        self._config = config
        self._is_open = False
        self._ended = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def ended(self) -> bool:
        """Whether playback reached the end of a finite source."""
        return self._ended

    @property
    def frame_index(self) -> int:
        return self._frame_index

    @property
    @abstractmethod
    def width(self) -> int:
        """Frame width in pixels, 0 while unknown."""
        pass

    @property
    @abstractmethod
    def height(self) -> int:
        """Frame height in pixels, 0 while unknown."""
        pass

    def is_ready(self) -> bool:
        """Whether a frame with usable dimensions can be read right now."""
        return self._is_open and not self._ended and self.width > 0 and self.height > 0

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the video source.

        Raises:
            RuntimeError: If the source cannot be opened.
        """
        pass

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """
        Advance playback and return the current frame.

        Returns None if no frame is available (end of video, camera error).
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release resources. Safe to call multiple times."""
        pass
