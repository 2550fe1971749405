class PipelineError(Exception):
    """Base error for known pipeline failures."""


class ModelLoadError(PipelineError):
    """Raised when the recognition backend fails to initialize."""


class DetectionError(PipelineError):
    """Raised when a single frame could not be analyzed."""


class InvalidFrameError(DetectionError):
    """Raised when the video has no usable pixel dimensions yet."""
