"""
Frame scheduling: decides which video frames reach the recognizer.
"""

from .scheduler import FrameScheduler, PipelineState, SchedulerState, SchedulerStats

__all__ = ["FrameScheduler", "PipelineState", "SchedulerState", "SchedulerStats"]
