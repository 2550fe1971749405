"""
Frame scheduler for the detection pipeline.

A cooperative loop on the asyncio event loop. Each tick advances the video
and decides whether the current frame goes to the recognizer or whether the
last cached result is re-emitted instead:

    IDLE -> WAITING_FOR_VIDEO_READY   video not ready, retry next tick
         -> DETECTING                 skip slot reached (or nothing cached yet)
         -> SKIPPING                  re-emit the cached result

At most one recognition call is in flight at any time. Ticks keep running
while a call is pending; they simply fall through to SKIPPING.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from inference.adapter import RecognitionAdapter
from models.anomaly import AnomalyResult
from models.config import SchedulerConfig
from models.detection import Detection
from models.errors import DetectionError, InvalidFrameError
from models.frame import FrameData
from observation.base import VideoSource

ResultCallback = Callable[[List[Detection], AnomalyResult], None]
ErrorCallback = Callable[[Exception], None]
Analyzer = Callable[[List[Detection]], AnomalyResult]


class SchedulerState(str, Enum):
    IDLE = "idle"
    WAITING_FOR_VIDEO_READY = "waiting_for_video_ready"
    DETECTING = "detecting"
    SKIPPING = "skipping"


@dataclass
class PipelineState:
    """
    Shared mutable state of one pipeline instance.

    The facade owns model_loaded and frame_skip; the scheduler is the only
    writer of frame_counter, in_flight, last_detections and last_result.
    """
    model_loaded: bool = False
    frame_skip: int = 2
    frame_counter: int = 0
    in_flight: bool = False
    last_detections: List[Detection] = field(default_factory=list)
    last_result: Optional[AnomalyResult] = None


@dataclass
class SchedulerStats:
    """Runtime statistics for the scheduler."""
    ticks: int = 0
    detections: int = 0
    skipped: int = 0
    waiting: int = 0
    errors: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)


class FrameScheduler:
    """
    Drives detection over a VideoSource.

    Example:
        scheduler = FrameScheduler(video, adapter, analyze, state, on_result)
        task = asyncio.create_task(scheduler.run())
        ...
        scheduler.stop()
    """

    def __init__(
        self,
        video: VideoSource,
        adapter: RecognitionAdapter,
        analyze: Analyzer,
        state: PipelineState,
        on_result: ResultCallback,
        on_error: Optional[ErrorCallback] = None,
        config: Optional[SchedulerConfig] = None,
    ):
        self._video = video
        self._adapter = adapter
        self._analyze = analyze
        self.state = state
        self._on_result = on_result
        self._on_error = on_error
        self.config = config or SchedulerConfig()
        self.stats = SchedulerStats()
        self.current = SchedulerState.IDLE
        self._stopped = False
        self._in_flight_task: Optional[asyncio.Task] = None

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def in_flight_task(self) -> Optional[asyncio.Task]:
        return self._in_flight_task

    def tick(self) -> Optional[asyncio.Task]:
        """
        Run one scheduling step.

        Must be called from inside a running event loop. Returns the
        detection task when this tick launched one, otherwise None.
        """
        self.stats.ticks += 1

        frame_data: Optional[FrameData] = None
        if self._video.is_ready():
            frame_data = self._video.read()
        if frame_data is None:
            # Does not consume a skip slot.
            self.current = SchedulerState.WAITING_FOR_VIDEO_READY
            self.stats.waiting += 1
            return None

        st = self.state
        st.frame_counter = (st.frame_counter + 1) % (st.frame_skip + 1)

        if (st.frame_counter == 0 or not st.last_detections) and not st.in_flight:
            self.current = SchedulerState.DETECTING
            st.in_flight = True
            self.stats.detections += 1
            self._in_flight_task = asyncio.get_running_loop().create_task(
                self._detect(frame_data)
            )
            return self._in_flight_task

        self.current = SchedulerState.SKIPPING
        self.stats.skipped += 1
        if st.last_result is not None:
            self._deliver(st.last_detections, st.last_result)
        return None

    async def _detect(self, frame_data: FrameData) -> None:
        st = self.state
        try:
            detections = await self._adapter.detect(frame_data.frame)
            if self._stopped:
                logging.debug(f"Discarding result for frame {frame_data.frame_index} after stop")
                return
            result = self._analyze(detections)
            st.last_detections = detections
            st.last_result = result
            self._deliver(detections, result)
        except InvalidFrameError as e:
            logging.debug(f"Frame {frame_data.frame_index} not usable yet: {e}")
        except DetectionError as e:
            self.stats.errors += 1
            logging.error(f"Error detecting objects: {e}")
            self._report(e)
        except Exception as e:
            self.stats.errors += 1
            logging.error(f"Error scoring frame {frame_data.frame_index}: {e}")
            err = DetectionError(f"Anomaly scoring failed: {e}")
            err.__cause__ = e
            self._report(err)
        finally:
            st.in_flight = False
            self._in_flight_task = None

    def _deliver(self, detections: List[Detection], result: AnomalyResult) -> None:
        try:
            self._on_result(detections, result)
        except Exception as e:
            logging.warning(f"Callback error: {e}")

    def _report(self, error: Exception) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception as e:
            logging.warning(f"Error callback failed: {e}")

    async def run(self) -> None:
        """Tick every ``tick_interval`` seconds until stop() or cancellation."""
        self.stats = SchedulerStats()
        logging.info(
            f"Frame scheduler started: source={self._video.source_id}, "
            f"frame_skip={self.state.frame_skip}"
        )
        try:
            while not self._stopped:
                self.tick()
                self._log_stats_if_due()
                await asyncio.sleep(self.config.tick_interval)
        finally:
            self._stopped = True
            self.current = SchedulerState.IDLE
            logging.info("Frame scheduler stopped")

    def stop(self) -> None:
        """
        Stop future ticks, including a run() that has not started yet.

        A pending recognition call finishes but its result is dropped. A
        stopped scheduler is not restarted; create a new one instead.
        """
        self._stopped = True

    async def wait_idle(self) -> None:
        """Wait for the in-flight recognition call, if any."""
        task = self.in_flight_task
        if task is not None:
            await task

    def _log_stats_if_due(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Scheduler stats: ticks={self.stats.ticks}, "
                f"detections={self.stats.detections}, skipped={self.stats.skipped}, "
                f"waiting={self.stats.waiting}, errors={self.stats.errors}"
            )
            self.stats.last_stats_log_time = now
