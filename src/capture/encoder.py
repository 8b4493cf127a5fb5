"""
Still-frame encoding for captures.
"""

from __future__ import annotations

from typing import Tuple

import cv2

from models.errors import CaptureError
from models.frame import FrameData

MEDIA_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
}


def encode_frame(frame_data: FrameData, image_format: str = "png", jpeg_quality: int = 95) -> Tuple[bytes, str]:
    """
    Encode a frame into image bytes.

    Returns:
        (image_bytes, media_type)

    Raises:
        CaptureError: Unsupported format or the encoder failed.
    """
    ext = image_format.lower().lstrip(".")
    if ext not in MEDIA_TYPES:
        raise CaptureError(f"Unsupported image format: {image_format}", context="Failed to capture image")

    params = [int(cv2.IMWRITE_JPEG_QUALITY), jpeg_quality] if ext in ("jpg", "jpeg") else []
    try:
        ok, buf = cv2.imencode(f".{ext}", frame_data.to_bgr(), params)
    except cv2.error as e:
        raise CaptureError(str(e), context="Failed to capture image") from e
    if not ok:
        raise CaptureError("Encoder returned no data", context="Failed to capture image")
    return buf.tobytes(), MEDIA_TYPES[ext]
