"""
FrameSource interface for pluggable video sources.

The detection loop pulls the current frame on each tick; it does not care
whether frames come from a camera, a video file or a synthetic pattern.
"""

from __future__ import annotations

import errno
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from models.frame import FrameData

STREAM_ERROR_MESSAGES = {
    "permission": "Camera permission denied. Please allow camera access.",
    "not_found": "No camera found. Please ensure a camera is connected.",
    "busy": "Camera is already in use by another application.",
    "unsupported": "Camera does not support the requested settings.",
}


def describe_stream_error(err: BaseException) -> str:
    """Map common acquisition failures to a message suitable for the UI."""
    if isinstance(err, PermissionError):
        return STREAM_ERROR_MESSAGES["permission"]
    if isinstance(err, FileNotFoundError):
        return STREAM_ERROR_MESSAGES["not_found"]
    if isinstance(err, OSError) and err.errno == errno.EBUSY:
        return STREAM_ERROR_MESSAGES["busy"]
    if isinstance(err, ValueError):
        return STREAM_ERROR_MESSAGES["unsupported"]
    return str(err) or "An unexpected error occurred"


@dataclass
class SourceConfig:
    """
    Base configuration for frame sources.

    Attributes:
        source_id: Identifier for this source (e.g., "main-camera").
        resolution: Target resolution as (width, height). None = source default.
        fps: Target frames per second. None = source default.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    resolution: Optional[tuple[int, int]] = None
    fps: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class FrameSource(ABC):
    """
    Abstract base class for frame sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to start streaming
        3. Call read() whenever the current frame is needed
        4. Call close() to release resources

    ``is_open`` doubles as the streaming flag the detection loop checks.
    """

    def __init__(self, config: SourceConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        """Whether the source is open and producing frames."""
        return self._is_open

    @property
    def frame_index(self) -> int:
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Start the source.

        Raises:
            PermissionError, FileNotFoundError, OSError, ValueError or
            RuntimeError when the source cannot be acquired.
        """
        pass

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """
        Return the current frame, or None if no frame is available.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the source. Safe to call multiple times."""
        pass

    def __enter__(self) -> "FrameSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
