"""
Intersection-over-Union and greedy non-maximum suppression.

Boxes are corner form (x1, y1, x2, y2). Suppression runs within one class
group; callers partition by class first.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

Box = Tuple[float, float, float, float]


def iou(box_a: Sequence[float], box_b: Sequence[float]) -> float:
    """
    Intersection over union of two corner-form boxes.

    Returns 0.0 for disjoint boxes (touching edges included) and for
    degenerate boxes whose union has no area.
    """
    ax1, ay1, ax2, ay2 = box_a
    bx1, by1, bx2, by2 = box_b

    inter_w = min(ax2, bx2) - max(ax1, bx1)
    inter_h = min(ay2, by2) - max(ay1, by1)
    if inter_w <= 0 or inter_h <= 0:
        return 0.0

    intersection = inter_w * inter_h
    area_a = (ax2 - ax1) * (ay2 - ay1)
    area_b = (bx2 - bx1) * (by2 - by1)
    union = area_a + area_b - intersection
    if union <= 0:
        return 0.0
    return intersection / union


def suppress(
    boxes: Sequence[Sequence[float]],
    scores: Sequence[float],
    confidence_threshold: float = 0.5,
    iou_threshold: float = 0.4,
) -> List[int]:
    """
    Greedy NMS over one class group.

    Args:
        boxes: Corner-form boxes.
        scores: Score for each box.
        confidence_threshold: Boxes scoring below this are dropped first.
        iou_threshold: A box overlapping a kept box by more than this is suppressed.

    Returns:
        Indices into ``boxes`` of the kept boxes, highest score first. Equal
        scores keep their input order.
    """
    if len(boxes) != len(scores):
        raise ValueError(f"Got {len(boxes)} boxes but {len(scores)} scores")

    order = [i for i in range(len(boxes)) if scores[i] >= confidence_threshold]
    # sorted() is stable, so ties stay in index order
    order = sorted(order, key=lambda i: -scores[i])

    keep: List[int] = []
    suppressed = set()
    for pos, i in enumerate(order):
        if i in suppressed:
            continue
        keep.append(i)
        for j in order[pos + 1:]:
            if j in suppressed:
                continue
            if iou(boxes[i], boxes[j]) > iou_threshold:
                suppressed.add(j)
    return keep
