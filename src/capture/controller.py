"""
Auto-capture on trigger sightings.

The controller listens to every published detection set. The first set that
contains a trigger-class detection while the stream is live produces one
capture; the one-shot latch then holds until reset() is called for a new
session, no matter how long the trigger object stays in view.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional, Tuple

from models.config import CaptureConfig
from models.detection import Detection
from models.errors import CaptureError
from models.frame import FrameData
from models.state import CaptureEvent, CaptureState, ErrorInfo
from observation.base import FrameSource
from .encoder import encode_frame

CaptureListener = Callable[[CaptureEvent], None]
Encoder = Callable[[FrameData, str], Tuple[bytes, str]]


class CaptureController:
    """
    Enforces at most one automatic capture per streaming session.

    Args:
        source: Frame source; captures only happen while it is open.
        cfg: Capture settings (alert window, image format).
        clock: Monotonic clock used for the alert window.
        encoder: Frame encoder, ``encoder(frame, image_format) -> (bytes, media_type)``.
    """

    def __init__(
        self,
        source: FrameSource,
        cfg: Optional[CaptureConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        encoder: Encoder = encode_frame,
    ):
        self.source = source
        self.cfg = cfg or CaptureConfig()
        self.state = CaptureState()
        self.last_error: Optional[ErrorInfo] = None
        self._clock = clock
        self._encoder = encoder
        self._listeners: List[CaptureListener] = []

    def add_capture_listener(self, callback: CaptureListener) -> None:
        self._listeners.append(callback)

    @property
    def alert_visible(self) -> bool:
        """Whether the capture alert is showing; clears itself once the window passes."""
        self._refresh_alert()
        return self.state.alert_active

    def handle_detections(self, detections: List[Detection], frame_data: FrameData) -> Optional[CaptureEvent]:
        """DetectionLoop listener. Returns the capture event if one was taken."""
        self._refresh_alert()
        if not self.cfg.enabled or self.state.has_auto_captured:
            return None

        triggers = [d for d in detections if d.is_trigger]
        if not triggers or not self.source.is_open:
            return None
        trigger = max(triggers, key=lambda d: d.confidence)

        try:
            event = self._capture(frame_data, automatic=True, trigger=trigger)
        except CaptureError as e:
            self.last_error = ErrorInfo.from_exception(e)
            logging.error(self.last_error.message)
            return None

        self.state.has_auto_captured = True
        self.state.alert_active = True
        self.state.alert_expires_at = self._clock() + self.cfg.alert_seconds
        logging.info(
            f"Trigger object detected (class {trigger.class_index}, "
            f"confidence {trigger.confidence:.2f}); frame captured"
        )
        self._emit(event)
        return event

    async def capture_now(self, frame_data: Optional[FrameData] = None) -> Optional[CaptureEvent]:
        """
        Manual capture of ``frame_data``, or of the source's current frame
        (read in a worker thread).

        Does not touch the auto-capture latch. Failures are recorded on
        ``last_error`` and None is returned.
        """
        try:
            if frame_data is None:
                frame_data = await asyncio.to_thread(self._current_frame)
            event = self._capture(frame_data, automatic=False)
        except CaptureError as e:
            self.last_error = ErrorInfo.from_exception(e)
            logging.error(self.last_error.message)
            return None
        logging.info("Manual capture taken")
        self._emit(event)
        return event

    def reset(self) -> None:
        """Start a new session: clear the latch, the alert and any capture error."""
        self.state = CaptureState()
        self.last_error = None
        logging.info("Capture latch reset")

    def _current_frame(self) -> FrameData:
        if not self.source.is_open:
            raise CaptureError("Video or camera not available", context="Capture failed")
        try:
            frame_data = self.source.read()
        except Exception as e:
            raise CaptureError(str(e) or type(e).__name__, context="Capture failed") from e
        if frame_data is None:
            raise CaptureError("No frame available", context="Capture failed")
        return frame_data

    def _capture(
        self,
        frame_data: FrameData,
        automatic: bool,
        trigger: Optional[Detection] = None,
    ) -> CaptureEvent:
        image, media_type = self._encoder(frame_data, self.cfg.image_format)
        self.last_error = None
        return CaptureEvent(
            image=image,
            media_type=media_type,
            captured_at=time.time(),
            automatic=automatic,
            trigger=trigger,
        )

    def _refresh_alert(self) -> None:
        expires = self.state.alert_expires_at
        if self.state.alert_active and expires is not None and self._clock() >= expires:
            self.state.alert_active = False
            self.state.alert_expires_at = None

    def _emit(self, event: CaptureEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logging.warning(f"Capture listener error: {e}")
