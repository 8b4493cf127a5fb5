"""
Decoder for YOLO-style raw output tensors.

Layout is [1, 4 + C, N]: rows 0..3 hold center-form boxes (cx, cy, w, h) in
model-input pixels, row 4 + k holds the score of class k for each of the N
candidates.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

import numpy as np

from models.detection import BoundingBox, RawCandidate


def _as_predictions(raw: np.ndarray) -> np.ndarray:
    preds = np.asarray(raw)
    if preds.ndim == 3:
        if preds.shape[0] != 1:
            raise ValueError(f"Expected batch size 1, got output shape {preds.shape}")
        preds = preds[0]
    if preds.ndim != 2 or preds.shape[0] < 5:
        raise ValueError(f"Expected output shaped [1, 4+C, N], got {np.shape(raw)}")
    return preds


def decode_output(
    raw: np.ndarray,
    frame_width: int,
    frame_height: int,
    class_indices: Sequence[int],
    confidence_threshold: float = 0.5,
    input_size: int = 640,
) -> Dict[int, List[RawCandidate]]:
    """
    Turn the raw output tensor into per-class candidates in frame pixels.

    Only the monitored ``class_indices`` are read; classes are independent, so
    one candidate row may produce a candidate for several classes.

    Returns:
        Mapping of class index to its candidates, in candidate-row order.
    """
    preds = _as_predictions(raw)
    num_classes = preds.shape[0] - 4

    scale_x = frame_width / input_size
    scale_y = frame_height / input_size

    grouped: Dict[int, List[RawCandidate]] = {}
    for class_index in class_indices:
        if not 0 <= class_index < num_classes:
            raise ValueError(
                f"Monitored class {class_index} is outside the model's {num_classes} classes"
            )

        scores = np.array(preds[4 + class_index], dtype=np.float32, copy=True)
        rows = np.nonzero(scores >= confidence_threshold)[0]
        if rows.size == 0:
            grouped[class_index] = []
            continue

        boxes = np.array(preds[0:4, rows], dtype=np.float64, copy=True)
        candidates = []
        for col, row in enumerate(rows):
            cx, cy, w, h = boxes[:, col]
            box = BoundingBox.from_center(float(cx), float(cy), float(w), float(h))
            candidates.append(
                RawCandidate(
                    box=box.scaled(scale_x, scale_y),
                    score=float(scores[row]),
                    class_index=class_index,
                )
            )
        grouped[class_index] = candidates
    return grouped
