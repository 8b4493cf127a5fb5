"""
Detection loop for the trigger capture detector.

Runs preprocess -> inference -> decode -> suppress against the current frame
on a fixed cadence while the stream is active and the model is ready, and
publishes the latest detection set to listeners.

Phases:
    IDLE       stream not active (or model not ready yet)
    POLLING    stream active, model ready, no error; the timer is running
    SUSPENDED  a cycle failed; waits for resume() or a stream restart

Cycles never overlap: a tick that fires while the previous cycle is still in
flight is skipped, not queued. Leaving POLLING cancels the timer and the
in-flight cycle, and a cycle from an earlier generation never publishes.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass
from typing import Callable, List, Optional

from detection.postprocess import build_detections
from detection.preprocess import prepare_frame
from inference.model_manager import ModelManager
from models.config import DetectionConfig
from models.detection import Detection
from models.errors import InferenceError, StreamError
from models.frame import FrameData
from models.state import ErrorInfo, LoopPhase, LoopState
from observation.base import FrameSource

DetectionListener = Callable[[List[Detection], FrameData], None]
ErrorListener = Callable[[ErrorInfo], None]


@dataclass
class LoopStats:
    """Runtime statistics for the detection loop."""
    cycles: int = 0
    skipped_ticks: int = 0
    failures: int = 0
    discarded: int = 0
    last_cycle_ms: Optional[float] = None


class DetectionLoop:
    """
    Polls the frame source and publishes detections.

    Example:
        loop = DetectionLoop(source, model_manager, DetectionConfig())
        loop.add_listener(capture_controller.handle_detections)
        source.open()
        await model_manager.load()
        loop.update()  # enters POLLING
    """

    def __init__(self, source: FrameSource, model: ModelManager, cfg: DetectionConfig):
        self.source = source
        self.model = model
        self.cfg = cfg
        self.state = LoopState()
        self.stats = LoopStats()
        self._detections: List[Detection] = []
        self._listeners: List[DetectionListener] = []
        self._error_listeners: List[ErrorListener] = []
        self._timer_task: Optional[asyncio.Task] = None
        self._cycle_task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def detections(self) -> List[Detection]:
        """The latest published detection set."""
        return list(self._detections)

    @property
    def phase(self) -> LoopPhase:
        return self.state.phase

    def add_listener(self, callback: DetectionListener) -> None:
        """Call ``callback(detections, frame)`` after each successful cycle."""
        self._listeners.append(callback)

    def add_error_listener(self, callback: ErrorListener) -> None:
        """Call ``callback(error_info)`` whenever a cycle fails."""
        self._error_listeners.append(callback)

    def update(self) -> LoopPhase:
        """
        Re-evaluate the phase from the stream, model and error state.

        Entering POLLING starts the timer, so this must run inside an event loop.
        """
        self.state.streaming = self.source.is_open
        if not self.state.streaming:
            self._enter(LoopPhase.IDLE)
        elif self.state.last_error is not None:
            self._enter(LoopPhase.SUSPENDED)
        elif self.model.is_ready:
            self._enter(LoopPhase.POLLING)
        else:
            self._enter(LoopPhase.IDLE)
        return self.state.phase

    def resume(self) -> LoopPhase:
        """Clear the recorded error and try to get back to POLLING."""
        if self.state.last_error is not None:
            logging.info(f"Resuming detection after error: {self.state.last_error.message}")
        self.state.last_error = None
        return self.update()

    async def stop(self) -> None:
        """Leave POLLING and wait for the timer and any in-flight cycle to unwind."""
        tasks = [t for t in (self._timer_task, self._cycle_task) if t is not None]
        self.state.streaming = False
        self._enter(LoopPhase.IDLE)
        current = asyncio.current_task()
        pending = [t for t in tasks if t is not current and not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def tick(self) -> Optional[asyncio.Task]:
        """
        Start one detection cycle if polling and no cycle is in flight.

        Returns:
            The cycle task, or None when the tick was skipped.
        """
        if self.state.phase is not LoopPhase.POLLING:
            return None
        if self.state.detecting:
            self.stats.skipped_ticks += 1
            logging.debug("Previous detection cycle still running, skipping tick")
            return None

        self.state.detecting = True
        self._cycle_task = asyncio.get_running_loop().create_task(self._run_cycle(self._generation))
        return self._cycle_task

    def _enter(self, phase: LoopPhase) -> None:
        previous = self.state.phase
        self.state.phase = phase
        if phase is LoopPhase.POLLING:
            self._ensure_timer()
            if previous is not phase:
                classes = {k: v.value for k, v in self.cfg.classes.items()}
                logging.info(
                    f"Detection loop {previous.value} -> polling every "
                    f"{self.cfg.interval_ms} ms, classes={classes}"
                )
            return

        if previous is LoopPhase.POLLING or self._timer_task is not None:
            self._cancel()
        if phase is LoopPhase.IDLE:
            self._detections = []
        if previous is not phase:
            logging.info(f"Detection loop {previous.value} -> {phase.value}")

    def _ensure_timer(self) -> None:
        if self._timer_task is None or self._timer_task.done():
            self._timer_task = asyncio.get_running_loop().create_task(self._run_timer())

    def _cancel(self) -> None:
        self._generation += 1
        current = asyncio.current_task() if _loop_running() else None
        for task in (self._timer_task, self._cycle_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._timer_task = None
        self._cycle_task = None
        self.state.detecting = False

    async def _run_timer(self) -> None:
        interval = self.cfg.interval_seconds
        while True:
            await asyncio.sleep(interval)
            self.tick()

    async def _run_cycle(self, generation: int) -> None:
        started = time.perf_counter()
        try:
            frame_data = await self._read_frame()
            detections = await self._detect(frame_data)
        except StreamError as e:
            if generation == self._generation:
                self._fail(e, stream_lost=True)
            return
        except InferenceError as e:
            if generation == self._generation:
                self._fail(e)
            return
        finally:
            if generation == self._generation:
                self.state.detecting = False

        if generation != self._generation or self.state.phase is not LoopPhase.POLLING:
            self.stats.discarded += 1
            logging.debug("Discarding detection result from a cancelled cycle")
            return

        self.stats.cycles += 1
        self.stats.last_cycle_ms = (time.perf_counter() - started) * 1000.0
        self._publish(detections, frame_data)

    async def _read_frame(self) -> FrameData:
        if not self.source.is_open:
            raise StreamError("Video stream is not active", context="Stream lost")
        # Blocking device read runs in a worker thread
        try:
            frame_data = await asyncio.to_thread(self.source.read)
        except Exception as e:
            raise StreamError(str(e) or type(e).__name__, context="Stream lost") from e
        if frame_data is None:
            raise StreamError("Frame source stopped producing frames", context="Stream lost")
        return frame_data

    async def _detect(self, frame_data: FrameData) -> List[Detection]:
        try:
            engine = self.model.engine
            tensor = prepare_frame(frame_data, self.cfg.input_size)
            output = await engine.predict(tensor)
            del tensor
            with output:
                return build_detections(
                    output.tensor,
                    frame_data.width,
                    frame_data.height,
                    self.cfg,
                    detected_at=frame_data.timestamp,
                )
        except Exception as e:
            raise InferenceError(str(e) or type(e).__name__, context="Detection failed") from e

    def _publish(self, detections: List[Detection], frame_data: FrameData) -> None:
        self._detections = detections
        if detections:
            counts = Counter(d.class_label.value for d in detections)
            summary = ", ".join(f"{n} {label}" for label, n in counts.items())
            logging.debug(f"Frame {frame_data.frame_index}: detected {summary}")

        for listener in list(self._listeners):
            try:
                listener(list(detections), frame_data)
            except Exception as e:
                logging.warning(f"Detection listener error: {e}")

    def _fail(self, err: Exception, stream_lost: bool = False) -> None:
        info = ErrorInfo.from_exception(err)
        logging.error(info.message)
        self.stats.failures += 1
        self._detections = []
        self.state.last_error = info
        if stream_lost:
            self.state.streaming = False
            self._enter(LoopPhase.IDLE)
        else:
            self._enter(LoopPhase.SUSPENDED)

        for listener in list(self._error_listeners):
            try:
                listener(info)
            except Exception as e:
                logging.warning(f"Error listener failed: {e}")


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True
