"""
Model lifecycle: backend init -> ready-wait -> model fetch -> warm-up, and dispose.

The manager is the only owner of the engine handle. A failed load leaves the
state at FAILED and is not retried until load() is called again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from detection.preprocess import zeros_input
from models.errors import ModelLoadError
from models.state import ModelState
from .backend import InferenceEngine

EngineFactory = Callable[[], InferenceEngine]


class ModelManager:
    """
    Owns the inference engine across its lifecycle.

    Example:
        manager = ModelManager(lambda: OnnxInferenceEngine(OnnxConfig("yolov8n.onnx")))
        await manager.load()
        output = await manager.engine.predict(tensor)
        ...
        manager.dispose()
    """

    def __init__(self, engine_factory: EngineFactory, input_size: int = 640, warmup: bool = True):
        self._engine_factory = engine_factory
        self.input_size = input_size
        self.warmup = warmup
        self._engine: Optional[InferenceEngine] = None
        self._state = ModelState.UNLOADED
        self.last_error: Optional[ModelLoadError] = None

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is ModelState.READY

    @property
    def engine(self) -> InferenceEngine:
        if self._state is not ModelState.READY or self._engine is None:
            raise RuntimeError(f"Model is not ready (state={self._state.value})")
        return self._engine

    async def load(self) -> None:
        """
        Load and warm up the model.

        Raises:
            ModelLoadError: If any step fails. The state is FAILED afterwards.
        """
        if self._state in (ModelState.LOADING, ModelState.READY):
            logging.debug(f"Model load skipped (state={self._state.value})")
            return

        self._state = ModelState.LOADING
        self.last_error = None
        engine: Optional[InferenceEngine] = None
        try:
            logging.info("Initializing inference backend...")
            engine = self._engine_factory()
            await asyncio.to_thread(engine.initialize)
            await asyncio.to_thread(engine.wait_ready)

            logging.info("Loading detection model...")
            await asyncio.to_thread(engine.load)

            if self.warmup:
                logging.info("Warming up model...")
                output = await engine.predict(zeros_input(self.input_size))
                output.release()
        except asyncio.CancelledError:
            if engine is not None:
                self._close_engine(engine)
            self._state = ModelState.UNLOADED
            raise
        except Exception as e:
            if engine is not None:
                self._close_engine(engine)
            self._state = ModelState.FAILED
            err = ModelLoadError(str(e) or type(e).__name__, context="Failed to load model")
            self.last_error = err
            logging.error(str(err))
            raise err from e

        self._engine = engine
        self._state = ModelState.READY
        logging.info("Model loaded and ready for detection")

    def dispose(self) -> None:
        """Release the engine. Safe to call more than once."""
        engine, self._engine = self._engine, None
        if engine is not None:
            self._close_engine(engine)
            logging.info("Model disposed")
        self._state = ModelState.UNLOADED

    @staticmethod
    def _close_engine(engine: InferenceEngine) -> None:
        try:
            engine.close()
        except Exception as e:
            logging.warning(f"Error closing inference engine: {e}")
