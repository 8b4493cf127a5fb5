"""
Pipeline module for the trigger capture detector.

The detection loop orchestrates the per-tick flow:
- Frame acquisition from the frame source
- Preprocessing and inference
- Decoding and per-class suppression
- Publishing the detection set to listeners (capture controller, UI)
"""

from .engine import DetectionLoop, LoopStats

__all__ = [
    "DetectionLoop",
    "LoopStats",
]
