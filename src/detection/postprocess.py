"""
Raw model output -> published Detection records.

Decodes candidates for the monitored classes, runs NMS separately for each
class and concatenates the survivors in class-table order. Boxes of different
classes never suppress each other.
"""

from __future__ import annotations

import time
from typing import List, Optional

import numpy as np

from models.config import DetectionConfig
from models.detection import Detection
from .decoder import decode_output
from .nms import suppress


def build_detections(
    raw: np.ndarray,
    frame_width: int,
    frame_height: int,
    cfg: DetectionConfig,
    detected_at: Optional[float] = None,
) -> List[Detection]:
    """
    Run decode + per-class suppression over one inference output.

    Args:
        raw: Model output shaped [1, 4+C, N].
        frame_width: Width of the source frame the boxes are scaled to.
        frame_height: Height of the source frame the boxes are scaled to.
        cfg: Thresholds, input size and class table.
        detected_at: Timestamp stamped on every detection of this cycle.
    """
    if detected_at is None:
        detected_at = time.time()

    grouped = decode_output(
        raw,
        frame_width,
        frame_height,
        cfg.monitored_indices,
        confidence_threshold=cfg.conf_threshold,
        input_size=cfg.input_size,
    )

    detections: List[Detection] = []
    for class_index, label in cfg.classes.items():
        candidates = grouped.get(class_index) or []
        if not candidates:
            continue
        keep = suppress(
            [c.box.as_tuple() for c in candidates],
            [c.score for c in candidates],
            confidence_threshold=cfg.conf_threshold,
            iou_threshold=cfg.iou_threshold,
        )
        for i in keep:
            cand = candidates[i]
            detections.append(
                Detection(
                    bbox=cand.box,
                    confidence=cand.score,
                    class_label=label,
                    class_index=class_index,
                    detected_at=detected_at,
                )
            )
    return detections
