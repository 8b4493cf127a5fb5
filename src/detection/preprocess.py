"""
Frame preprocessing for the detection model.

The model takes a fixed square input, so frames are stretched (not letterboxed)
to S x S. This matches how the model was trained.
"""

from __future__ import annotations

import cv2
import numpy as np

from models.frame import FrameData


def prepare(frame: np.ndarray, input_size: int = 640) -> np.ndarray:
    """
    Convert an RGB frame into the model input tensor.

    Args:
        frame: (H, W, 3) pixel array with values in 0..255.
        input_size: Side of the square model input.

    Returns:
        float32 array of shape (1, input_size, input_size, 3) with values in [0, 1].
    """
    if frame is None or frame.ndim != 3 or frame.shape[2] != 3:
        shape = None if frame is None else frame.shape
        raise ValueError(f"Expected an (H, W, 3) frame, got shape {shape}")
    if frame.shape[0] == 0 or frame.shape[1] == 0:
        raise ValueError("Cannot preprocess an empty frame")

    resized = cv2.resize(frame, (input_size, input_size), interpolation=cv2.INTER_LINEAR)
    normalized = resized.astype(np.float32) / np.float32(255.0)
    del resized
    return np.expand_dims(normalized, axis=0)


def prepare_frame(frame_data: FrameData, input_size: int = 640) -> np.ndarray:
    """Preprocess a FrameData, converting to RGB first."""
    return prepare(frame_data.to_rgb(), input_size)


def zeros_input(input_size: int = 640) -> np.ndarray:
    """Zero tensor with the model input shape, used for warm-up."""
    return np.zeros((1, input_size, input_size, 3), dtype=np.float32)
