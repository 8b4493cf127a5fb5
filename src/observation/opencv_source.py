"""
OpenCV-based frame source.

Supports:
- USB webcams (device_id as int, e.g., 0)
- RTSP/IP cameras and video files (device_id as str)
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2

from models.frame import FrameData
from .base import FrameSource, SourceConfig


@dataclass
class OpenCVSourceConfig(SourceConfig):
    """
    Configuration for OpenCV-based sources.

    Attributes:
        device_id: Camera index (int), stream URL (str) or file path (str).
        buffer_size: Capture buffer size; 1 keeps reads close to live.
        max_retries: Attempts made when opening the device.
        warmup_seconds: Pause after opening a live camera before the first read.
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    max_retries: int = 3
    warmup_seconds: float = 0.5

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any], source_id: str = "camera") -> "OpenCVSourceConfig":
        """Adapter: Create from the camera section of the config dict."""
        resolution = camera_cfg.get("resolution")
        if resolution:
            resolution = tuple(resolution)
        return cls(
            source_id=source_id,
            resolution=resolution,
            fps=camera_cfg.get("fps"),
            device_id=camera_cfg.get("device_id", 0),
            buffer_size=camera_cfg.get("buffer_size", 1),
            max_retries=camera_cfg.get("max_retries", 3),
        )


class OpenCVSource(FrameSource):
    """
    Wraps cv2.VideoCapture and hands out the latest frame as FrameData.

    Example:
        with OpenCVSource(OpenCVSourceConfig(device_id=0)) as source:
            frame_data = source.read()
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def open(self) -> None:
        if self._is_open:
            return

        cfg = self._opencv_config
        for attempt in range(1, cfg.max_retries + 1):
            self._cap = cv2.VideoCapture(self.device_id)
            if self._cap.isOpened():
                break
            self._cap.release()
            self._cap = None
            if attempt < cfg.max_retries:
                wait_time = min(2 ** attempt, 10)
                logging.warning(
                    f"Failed to open device {self.device_id} (attempt {attempt}/{cfg.max_retries}), "
                    f"retrying in {wait_time}s"
                )
                time.sleep(wait_time)

        if self._cap is None:
            if isinstance(self.device_id, int):
                raise FileNotFoundError(f"Camera device {self.device_id} could not be opened")
            raise RuntimeError(f"Failed to open {self.device_id} after {cfg.max_retries} attempts")

        if isinstance(self.device_id, int):
            self._configure_camera()
            if cfg.warmup_seconds > 0:
                time.sleep(cfg.warmup_seconds)

        self._is_open = True
        self._frame_index = 0
        logging.info(f"OpenCVSource opened: source_id={self.source_id}, device={self.device_id}")

    def _configure_camera(self) -> None:
        cfg = self._opencv_config
        if cfg.resolution:
            w, h = cfg.resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        if cfg.fps:
            self._cap.set(cv2.CAP_PROP_FPS, cfg.fps)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, cfg.buffer_size)

        actual_w = self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)
        actual_h = self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
        logging.info(f"Camera actual resolution: {actual_w}x{actual_h}")

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            if self.is_file:
                logging.info("End of video file reached")
            else:
                logging.warning(f"Failed to read frame from {self.device_id}")
            return None

        self._frame_index += 1
        return FrameData.from_numpy(
            frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
            color_order="bgr",
        )

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logging.info(f"OpenCVSource closed: source_id={self.source_id}")
        self._is_open = False
