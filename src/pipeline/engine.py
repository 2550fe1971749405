"""
Pipeline facade for the video anomaly detector.

This is the entry point surrounding code talks to. It owns the recognition
adapter, the history window, the rule engine and the scheduling loop, and
exposes:

    pipeline = create_pipeline_from_config(config)
    await pipeline.load_model()
    pipeline.set_frame_skip(2)
    pipeline.detect_objects_on_video(video, on_result, on_error)
    ...
    await pipeline.shutdown()
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional

from anomaly.history import AnomalyHistoryWindow
from anomaly.rules import AnomalyRuleEngine, create_rule_engine_from_config
from inference.adapter import RecognitionAdapter, create_adapter_from_config
from models.anomaly import AnomalyResult
from models.config import Config, SchedulerConfig
from models.detection import Detection
from models.errors import ModelLoadError
from observation.base import VideoSource
from scheduling.scheduler import (
    ErrorCallback,
    FrameScheduler,
    PipelineState,
    ResultCallback,
)


class DetectionPipeline:
    """
    Explicitly owned pipeline instance.

    Each instance carries its own PipelineState; nothing is shared between
    instances. Call shutdown() (or use ``async with``) to stop the loop and
    release the recognition backend.
    """

    def __init__(
        self,
        adapter: RecognitionAdapter,
        history: Optional[AnomalyHistoryWindow] = None,
        rule_engine: Optional[AnomalyRuleEngine] = None,
        scheduler_config: Optional[SchedulerConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.adapter = adapter
        self.clock = clock
        self.history = history if history is not None else AnomalyHistoryWindow(clock=clock)
        self.rule_engine = rule_engine if rule_engine is not None else AnomalyRuleEngine()
        self.scheduler_config = scheduler_config if scheduler_config is not None else SchedulerConfig()
        self.state = PipelineState(frame_skip=max(0, self.scheduler_config.frame_skip))
        self.scheduler: Optional[FrameScheduler] = None
        self._loop_task: Optional[asyncio.Task] = None
        # In-flight recognition calls of replaced schedulers.
        self._draining: List[asyncio.Task] = []

    def is_model_loaded(self) -> bool:
        return self.state.model_loaded

    async def load_model(self) -> None:
        """
        Load the recognition model.

        Raises:
            ModelLoadError: If loading failed; call again to retry.
        """
        logging.info("Loading object detection model...")
        try:
            await self.adapter.load()
        except ModelLoadError as e:
            self.state.model_loaded = False
            logging.error(f"Error loading model: {e}")
            raise
        self.state.model_loaded = True
        logging.info("Object detection model loaded")

    def set_frame_skip(self, skip: int) -> None:
        """Skip ``skip`` ticks between analyzed frames; negative values clamp to 0."""
        self.state.frame_skip = max(0, int(skip))
        logging.info(
            f"Frame skip set to {self.state.frame_skip} "
            f"(processing every {self.state.frame_skip + 1} frame)"
        )

    def analyze(self, detections: List[Detection]) -> AnomalyResult:
        """Record the frame in the history window and score it."""
        now = self.clock()
        self.history.record(detections, now)
        return self.rule_engine.evaluate(detections, self.history.frequencies(now))

    def detect_objects_on_video(
        self,
        video: VideoSource,
        on_result: ResultCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Optional[asyncio.Task]:
        """
        Start the scheduling loop over ``video``.

        Must be called from inside a running event loop. If the model is not
        loaded, a ModelLoadError is passed to ``on_error`` and nothing starts.
        Starting again replaces the current loop.

        Returns:
            The scheduling loop task, or None when start was aborted.
        """
        if not self.state.model_loaded:
            error = ModelLoadError("Model not loaded yet")
            logging.error(str(error))
            if on_error is not None:
                on_error(error)
            return None

        if self.scheduler is not None and not self.scheduler.stopped:
            logging.warning("Detection loop already running; restarting on new video")
            self._cancel_loop()
        self._retire_scheduler()

        self.scheduler = FrameScheduler(
            video,
            self.adapter,
            self.analyze,
            self.state,
            on_result,
            on_error,
            config=self.scheduler_config,
        )
        self._loop_task = asyncio.get_running_loop().create_task(self.scheduler.run())
        return self._loop_task

    def _cancel_loop(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()
        if self._loop_task is not None and not self._loop_task.done():
            self._loop_task.cancel()

    def _retire_scheduler(self) -> None:
        task = self.scheduler.in_flight_task if self.scheduler is not None else None
        if task is not None and not task.done():
            self._draining.append(task)

    async def stop(self) -> None:
        """Stop the scheduling loop and wait for it to finish."""
        task = self._loop_task
        self._cancel_loop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        draining, self._draining = self._draining, []
        for pending in draining:
            await pending
        if self.scheduler is not None:
            await self.scheduler.wait_idle()
        self._loop_task = None

    async def shutdown(self) -> None:
        """Stop the loop and release the recognition backend."""
        await self.stop()
        try:
            self.adapter.close()
        except Exception as e:
            logging.warning(f"Error closing recognition backend: {e}")
        self.state.model_loaded = False
        logging.info("Pipeline stopped")

    async def __aenter__(self) -> "DetectionPipeline":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()


def create_pipeline_from_config(config: Config, clock: Callable[[], float] = time.time) -> DetectionPipeline:
    """
    Factory function to create a DetectionPipeline from the typed config.

    Args:
        config: Full application config.
        clock: Time source for the history window (seconds).
    """
    return DetectionPipeline(
        adapter=create_adapter_from_config(config.recognition),
        history=AnomalyHistoryWindow(window=config.anomaly.history_window, clock=clock),
        rule_engine=create_rule_engine_from_config(config.anomaly),
        scheduler_config=config.scheduler,
        clock=clock,
    )
