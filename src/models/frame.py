"""
FrameData model for frames pulled from a FrameSource.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np


@dataclass
class FrameData:
    """
    A single frame handed to the detection pipeline.

    Attributes:
        frame: Pixel buffer as an (H, W, 3) uint8 array.
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when the frame was read.
        frame_index: Sequential frame number since the source was opened.
        source: Identifier of the source that produced the frame.
        color_order: Channel order of ``frame`` ("bgr" for OpenCV captures, "rgb" otherwise).
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None
    color_order: str = "bgr"

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
        color_order: str = "bgr",
    ) -> "FrameData":
        """Create FrameData from a numpy array, reading dimensions from its shape."""
        h, w = frame.shape[:2]
        return cls(
            frame=frame,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
            color_order=color_order,
        )

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)

    def to_rgb(self) -> np.ndarray:
        """Return the pixels in RGB order, the layout the model was trained on."""
        if self.color_order == "rgb":
            return self.frame
        return cv2.cvtColor(self.frame, cv2.COLOR_BGR2RGB)

    def to_bgr(self) -> np.ndarray:
        """Return the pixels in BGR order, the layout cv2 encoders expect."""
        if self.color_order == "bgr":
            return self.frame
        return cv2.cvtColor(self.frame, cv2.COLOR_RGB2BGR)
