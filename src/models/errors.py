"""
Error taxonomy for the detection pipeline.

Each error carries a short ``context`` describing the operation that failed;
``str(err)`` renders as "<context>: <message>" which is what ends up on the
error channel.
"""

from __future__ import annotations

from typing import Optional


class DetectorError(Exception):
    """Base class for all pipeline errors."""

    kind = "detector"

    def __init__(self, message: str, context: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            return f"{self.context}: {self.message}"
        return self.message


class ModelLoadError(DetectorError):
    """Backend init, model fetch or warm-up failed. Fatal until an explicit retry."""

    kind = "model_load"


class InferenceError(DetectorError):
    """A single detection cycle failed in preprocess, predict or decode."""

    kind = "inference"


class StreamError(DetectorError):
    """The frame source could not be opened or stopped producing frames."""

    kind = "stream"


class CaptureError(DetectorError):
    """Encoding the captured frame failed."""

    kind = "capture"
