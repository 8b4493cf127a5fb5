"""
Synthetic test-pattern source.

Produces a dark RGB frame with a bright square sweeping across it. Useful for
running the pipeline without a camera attached.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import numpy as np

from models.frame import FrameData
from .base import FrameSource, SourceConfig


class SyntheticSource(FrameSource):
    def __init__(self, config: Optional[SourceConfig] = None, square: int = 80, step: int = 16):
        super().__init__(config or SourceConfig(source_id="synthetic", resolution=(640, 480)))
        self.square = square
        self.step = step

    @property
    def size(self) -> tuple[int, int]:
        return self._config.resolution or (640, 480)

    def open(self) -> None:
        self._is_open = True
        self._frame_index = 0
        logging.info(f"SyntheticSource opened: size={self.size}")

    def read(self) -> Optional[FrameData]:
        if not self._is_open:
            return None

        w, h = self.size
        frame = np.full((h, w, 3), 16, dtype=np.uint8)
        span = max(1, w - self.square)
        x = (self._frame_index * self.step) % span
        y = max(0, (h - self.square) // 2)
        frame[y:y + self.square, x:x + self.square] = 235

        self._frame_index += 1
        return FrameData.from_numpy(
            frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
            color_order="rgb",
        )

    def close(self) -> None:
        if self._is_open:
            logging.info("SyntheticSource closed")
        self._is_open = False
