"""
Inference engine interface.

Engines take the preprocessed (1, S, S, 3) float32 tensor and return the raw,
undecoded model output wrapped in an InferenceOutput. The output owns the
tensor for the duration of one pipeline stage; callers use it as a context
manager so it is released on success and on every error path.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol

import numpy as np


class InferenceOutput:
    """Scoped owner of one raw output tensor."""

    def __init__(self, tensor: np.ndarray, on_release: Optional[Callable[[], None]] = None):
        self._tensor: Optional[np.ndarray] = tensor
        self._on_release = on_release

    @property
    def tensor(self) -> np.ndarray:
        if self._tensor is None:
            raise RuntimeError("Inference output already released")
        return self._tensor

    @property
    def released(self) -> bool:
        return self._tensor is None

    def release(self) -> None:
        """Drop the tensor. Safe to call more than once."""
        if self._tensor is None:
            return
        self._tensor = None
        if self._on_release is not None:
            self._on_release()
            self._on_release = None

    def __enter__(self) -> "InferenceOutput":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


class InferenceEngine(Protocol):
    def initialize(self) -> None:
        """Select and initialize the compute backend."""
        ...

    def wait_ready(self) -> None:
        """Block until the backend can accept a model."""
        ...

    def load(self) -> None:
        """Fetch the model and build the inference session."""
        ...

    async def predict(self, tensor: np.ndarray) -> InferenceOutput:
        ...

    def close(self) -> None:
        """Release the session and any buffers it holds."""
        ...
