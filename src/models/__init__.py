"""
Typed models for the trigger capture detector.

Frames, detections, lifecycle state, errors and configuration.
"""

from .frame import FrameData
from .detection import BoundingBox, ClassLabel, Detection, RawCandidate
from .errors import (
    DetectorError,
    ModelLoadError,
    InferenceError,
    StreamError,
    CaptureError,
)
from .state import (
    ModelState,
    LoopPhase,
    LoopState,
    CaptureState,
    CaptureEvent,
    ErrorInfo,
)
from .config import (
    Config,
    CameraConfig,
    ModelConfig,
    DetectionConfig,
    CaptureConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "BoundingBox",
    "ClassLabel",
    "Detection",
    "RawCandidate",
    # Errors
    "DetectorError",
    "ModelLoadError",
    "InferenceError",
    "StreamError",
    "CaptureError",
    # State
    "ModelState",
    "LoopPhase",
    "LoopState",
    "CaptureState",
    "CaptureEvent",
    "ErrorInfo",
    # Config
    "Config",
    "CameraConfig",
    "ModelConfig",
    "DetectionConfig",
    "CaptureConfig",
    "WebConfig",
]
