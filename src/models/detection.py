"""
Detection models for object detection results.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple


class ClassLabel(str, Enum):
    """Role a monitored model class plays in the capture flow."""
    SUBJECT = "subject"
    TRIGGER = "trigger"


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in corner form.

    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x1, self.y1, self.x2, self.y2)

    def as_xywh(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x1, self.y1, self.width, self.height)

    @classmethod
    def from_center(cls, cx: float, cy: float, w: float, h: float) -> "BoundingBox":
        """Create from (center_x, center_y, width, height) format."""
        return cls(x1=cx - w / 2, y1=cy - h / 2, x2=cx + w / 2, y2=cy + h / 2)

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> "BoundingBox":
        """Create from (x, y, width, height) format."""
        return cls(x1=x, y1=y, x2=x + w, y2=y + h)

    def scaled(self, sx: float, sy: float) -> "BoundingBox":
        """Return a copy with x coordinates multiplied by sx and y by sy."""
        return BoundingBox(x1=self.x1 * sx, y1=self.y1 * sy, x2=self.x2 * sx, y2=self.y2 * sy)


@dataclass(frozen=True)
class RawCandidate:
    """A per-class candidate box before suppression (corner form, frame pixels)."""
    box: BoundingBox
    score: float
    class_index: int


@dataclass(frozen=True)
class Detection:
    """
    A single detection published by the detection loop.

    Attributes:
        bbox: Bounding box in source-frame pixel coordinates.
        confidence: Class score in [0, 1].
        class_label: Role of the class (subject or trigger).
        class_index: Index of the class in the model output.
        detected_at: Unix timestamp of the inference cycle that produced it.
    """
    bbox: BoundingBox
    confidence: float
    class_label: ClassLabel
    class_index: int
    detected_at: float

    @property
    def box(self) -> Tuple[float, float, float, float]:
        """Box as (x, y, width, height)."""
        return self.bbox.as_xywh()

    @property
    def is_trigger(self) -> bool:
        return self.class_label is ClassLabel.TRIGGER

    def to_dict(self) -> Dict[str, Any]:
        x, y, w, h = self.box
        return {
            "box": [x, y, w, h],
            "confidence": self.confidence,
            "class_label": self.class_label.value,
            "class_index": self.class_index,
            "detected_at": self.detected_at,
        }
