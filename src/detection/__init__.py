"""
Detection postprocessing: preprocess frames, decode model output, suppress overlaps.
"""

from .preprocess import prepare, prepare_frame
from .decoder import decode_output
from .nms import iou, suppress
from .postprocess import build_detections

__all__ = ['prepare', 'prepare_frame', 'decode_output', 'iou', 'suppress', 'build_detections']
