"""
Detection session: wires the frame source, model, detection loop, capture
controller and gallery together and exposes the user-level commands.

Every failure is turned into an ErrorInfo on the error channel; none of the
commands raise.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import asdict
from typing import Any, Callable, Dict, List, Optional

from capture.controller import CaptureController, Encoder
from capture.encoder import encode_frame
from capture.gallery import InMemoryGallery
from inference.model_manager import ModelManager
from inference.onnx_backend import OnnxConfig, OnnxInferenceEngine
from models.config import CameraConfig, Config
from models.detection import Detection
from models.errors import ModelLoadError, StreamError
from models.state import CaptureEvent, ErrorInfo
from observation.base import FrameSource, SourceConfig, describe_stream_error
from observation.opencv_source import OpenCVSource, OpenCVSourceConfig
from observation.synthetic_source import SyntheticSource
from pipeline.engine import DetectionLoop


class DetectionSession:
    """
    One streaming session of the detector.

    Example:
        session = build_session_from_config(cfg)
        await session.startup()
        ...
        await session.shutdown()
    """

    def __init__(
        self,
        source: FrameSource,
        model: ModelManager,
        cfg: Optional[Config] = None,
        gallery: Optional[InMemoryGallery] = None,
        clock: Callable[[], float] = time.monotonic,
        encoder: Encoder = encode_frame,
    ):
        self.cfg = cfg or Config()
        self.source = source
        self.model = model
        self.loop = DetectionLoop(source, model, self.cfg.detection)
        self.capture = CaptureController(source, self.cfg.capture, clock=clock, encoder=encoder)
        self.gallery = gallery if gallery is not None else InMemoryGallery()
        self.started_at = time.time()
        self._error: Optional[ErrorInfo] = None

        self.loop.add_listener(self.capture.handle_detections)
        self.loop.add_error_listener(self._on_loop_error)
        self.capture.add_capture_listener(self.gallery.add)

    @property
    def last_error(self) -> Optional[ErrorInfo]:
        """The most recent error from the session, the loop or the capture controller."""
        errors = [e for e in (self._error, self.loop.state.last_error, self.capture.last_error) if e is not None]
        if not errors:
            return None
        return max(errors, key=lambda e: e.timestamp)

    @property
    def detections(self) -> List[Detection]:
        return self.loop.detections

    @property
    def streaming(self) -> bool:
        return self.source.is_open

    async def startup(self) -> None:
        """Open the stream, then load the model once."""
        await self.start_stream()
        await self.load_model()

    async def load_model(self) -> bool:
        try:
            await self.model.load()
        except ModelLoadError as e:
            self._error = ErrorInfo.from_exception(e)
            return False
        self._clear_error("model_load")
        self.loop.update()
        return True

    async def start_stream(self) -> bool:
        if self.source.is_open:
            self.loop.update()
            return True

        try:
            await asyncio.to_thread(self.source.open)
        except Exception as e:
            err = StreamError(describe_stream_error(e), context="Failed to start camera")
            self._error = ErrorInfo.from_exception(err)
            logging.error(self._error.message)
            self.loop.update()
            return False

        self._clear_error("stream")
        # Every fresh stream is a new capture session.
        self.capture.reset()
        logging.info(f"Video stream started ({self.source.source_id})")
        # A fresh stream lifts a suspended loop.
        self.loop.resume()
        return True

    async def stop_stream(self) -> None:
        await self.loop.stop()
        if self.source.is_open:
            self.source.close()
            logging.info("Video stream stopped")
        self.loop.update()

    async def reset(self) -> bool:
        """Stop the stream, clear the capture latch and all errors, start again."""
        logging.info("Resetting detection session")
        await self.stop_stream()
        # Latch clears even when the restart fails
        self.capture.reset()
        self._error = None
        self.loop.resume()
        return await self.start_stream()

    async def retry(self) -> bool:
        """Reload the model if it is not ready, otherwise re-acquire the stream and resume."""
        if not self.model.is_ready:
            logging.info("Retrying model load")
            return await self.load_model()

        if not self.source.is_open and not await self.start_stream():
            return False
        self.loop.resume()
        return True

    async def capture_now(self) -> Optional[CaptureEvent]:
        """Manual capture of the current frame; the auto-capture latch is left alone."""
        return await self.capture.capture_now()

    async def shutdown(self) -> None:
        await self.stop_stream()
        self.model.dispose()
        logging.info("Detection session shut down")

    def status(self) -> Dict[str, Any]:
        err = self.last_error
        return {
            "streaming": self.streaming,
            "model_state": self.model.state.value,
            "loop": self.loop.state.to_dict(),
            "alert_visible": self.capture.alert_visible,
            "has_auto_captured": self.capture.state.has_auto_captured,
            "detection_count": len(self.loop.detections),
            "capture_count": len(self.gallery),
            "last_error": err.to_dict() if err else None,
            "stats": asdict(self.loop.stats),
            "uptime_seconds": time.time() - self.started_at,
        }

    def _on_loop_error(self, info: ErrorInfo) -> None:
        if info.kind == StreamError.kind and self.source.is_open:
            logging.warning("Closing frame source after stream loss")
            self.source.close()

    def _clear_error(self, kind: str) -> None:
        if self._error is not None and self._error.kind == kind:
            self._error = None


def build_source(camera_cfg: CameraConfig, synthetic: bool = False) -> FrameSource:
    """Create the frame source named by the camera config."""
    resolution = tuple(camera_cfg.resolution) if camera_cfg.resolution else None
    if synthetic or camera_cfg.backend == "synthetic":
        return SyntheticSource(SourceConfig(source_id="synthetic", resolution=resolution, fps=camera_cfg.fps))
    if camera_cfg.backend == "opencv":
        return OpenCVSource(OpenCVSourceConfig.from_camera_config(camera_cfg.to_dict()))
    raise ValueError(f"Unknown camera backend: {camera_cfg.backend}")


def build_session_from_config(cfg: Config, synthetic: bool = False) -> DetectionSession:
    """
    Factory: build a session backed by onnxruntime and the configured source.

    Nothing is opened or loaded here; call startup() inside the event loop.
    """
    onnx_cfg = OnnxConfig(model_path=cfg.model.path, providers=list(cfg.model.providers))
    model = ModelManager(
        lambda: OnnxInferenceEngine(onnx_cfg),
        input_size=cfg.detection.input_size,
        warmup=cfg.model.warmup,
    )
    source = build_source(cfg.camera, synthetic=synthetic)
    return DetectionSession(source, model, cfg)
