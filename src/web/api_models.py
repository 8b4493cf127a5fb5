from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    kind: str
    message: str
    context: Optional[str] = None
    timestamp: float


class LoopStateResponse(BaseModel):
    streaming: bool
    detecting: bool
    phase: str = Field(..., description="idle|polling|suspended")
    last_error: Optional[ErrorResponse] = None


class LoopStatsResponse(BaseModel):
    cycles: int = 0
    skipped_ticks: int = 0
    failures: int = 0
    discarded: int = 0
    last_cycle_ms: Optional[float] = None


class StatusResponse(BaseModel):
    """
    Session status for dashboard polling.
    """
    status: str = Field(..., description="running|degraded|offline")
    alerts: List[str] = Field(default_factory=list)
    streaming: bool
    model_state: str = Field(..., description="unloaded|loading|ready|failed")
    loop: LoopStateResponse
    alert_visible: bool = Field(False, description="True while the capture alert is showing")
    has_auto_captured: bool = False
    detection_count: int = 0
    capture_count: int = 0
    last_error: Optional[ErrorResponse] = None
    stats: LoopStatsResponse
    uptime_seconds: float


class DetectionResponse(BaseModel):
    box: List[float] = Field(..., description="[x, y, width, height] in source-frame pixels")
    confidence: float
    class_label: str
    class_index: int
    detected_at: float


class DetectionsResponse(BaseModel):
    phase: str
    detections: List[DetectionResponse]


class CaptureResponse(BaseModel):
    index: int
    media_type: str
    captured_at: float
    automatic: bool
    size_bytes: int
    trigger: Optional[DetectionResponse] = None


class ControlResponse(BaseModel):
    ok: bool
    action: str
    status: StatusResponse
