"""
ONNX Runtime inference backend.

Runs a YOLOv8-style detection model exported to ONNX. The pipeline hands over
NHWC tensors; models exported with an NCHW input are transposed here so the
rest of the pipeline does not care about the export layout.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, List, Optional

import numpy as np

from .backend import InferenceEngine, InferenceOutput


@dataclass(frozen=True)
class OnnxConfig:
    model_path: str
    providers: List[str] = field(default_factory=lambda: ["CPUExecutionProvider"])


class OnnxInferenceEngine(InferenceEngine):
    def __init__(self, cfg: OnnxConfig):
        self.cfg = cfg
        self._ort: Any = None
        self._providers: Optional[List[str]] = None
        self._session: Any = None
        self._input_name: Optional[str] = None
        self._channels_first = False

    def initialize(self) -> None:
        try:
            import onnxruntime as ort  # type: ignore
        except ImportError as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is not installed. Install with `pip install onnxruntime`."
            ) from e

        available = ort.get_available_providers()
        providers = [p for p in self.cfg.providers if p in available]
        if not providers:
            raise RuntimeError(
                f"None of the requested execution providers {self.cfg.providers} "
                f"are available (available: {available})"
            )
        self._ort = ort
        self._providers = providers
        logging.info(f"ONNX Runtime backend initialized: providers={providers}")

    def wait_ready(self) -> None:
        if self._ort is None or not self._providers:
            raise RuntimeError("Inference backend is not initialized")

    def load(self) -> None:
        if not os.path.exists(self.cfg.model_path):
            raise FileNotFoundError(f"Model file not found: {self.cfg.model_path}")

        self._session = self._ort.InferenceSession(self.cfg.model_path, providers=self._providers)
        model_input = self._session.get_inputs()[0]
        self._input_name = model_input.name
        shape = list(model_input.shape)
        self._channels_first = len(shape) == 4 and shape[1] == 3
        logging.info(
            f"Model loaded: path={self.cfg.model_path}, input={self._input_name}{shape}"
        )

    def _run(self, tensor: np.ndarray) -> np.ndarray:
        if self._channels_first:
            tensor = np.ascontiguousarray(tensor.transpose(0, 3, 1, 2))
        outputs = self._session.run(None, {self._input_name: tensor})
        return outputs[0]

    async def predict(self, tensor: np.ndarray) -> InferenceOutput:
        if self._session is None:
            raise RuntimeError("Model is not loaded")
        raw = await asyncio.to_thread(self._run, tensor)
        return InferenceOutput(raw)

    def close(self) -> None:
        self._session = None
        self._input_name = None
