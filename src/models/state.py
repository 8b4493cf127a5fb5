"""
Lifecycle and session state models.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .detection import Detection
from .errors import DetectorError


class ModelState(str, Enum):
    """Model lifecycle states."""
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class LoopPhase(str, Enum):
    """Detection loop phases."""
    IDLE = "idle"
    POLLING = "polling"
    SUSPENDED = "suspended"


@dataclass(frozen=True)
class ErrorInfo:
    """
    The value surfaced on the error channel.

    Attributes:
        kind: Error family (model_load, inference, stream, capture).
        message: Human readable message including its context prefix.
        context: Operation that failed.
        timestamp: Unix timestamp when the error was recorded.
    """
    kind: str
    message: str
    context: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def from_exception(cls, err: BaseException, context: Optional[str] = None) -> "ErrorInfo":
        """Adapter: build from a DetectorError or any other exception."""
        if isinstance(err, DetectorError):
            ctx = err.context or context
            message = f"{ctx}: {err.message}" if ctx else err.message
            return cls(kind=err.kind, message=message, context=ctx)
        detail = str(err) or "An unexpected error occurred"
        message = f"{context}: {detail}" if context else detail
        return cls(kind="detector", message=message, context=context)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp,
        }


@dataclass
class LoopState:
    """State owned by the DetectionLoop; nothing else writes it."""
    streaming: bool = False
    detecting: bool = False
    last_error: Optional[ErrorInfo] = None
    phase: LoopPhase = LoopPhase.IDLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "streaming": self.streaming,
            "detecting": self.detecting,
            "phase": self.phase.value,
            "last_error": self.last_error.to_dict() if self.last_error else None,
        }


@dataclass
class CaptureState:
    """
    One-shot auto-capture latch for a streaming session.

    Attributes:
        has_auto_captured: Set on the first automatic capture, cleared only by a session reset.
        alert_active: Whether the capture alert is currently shown.
        alert_expires_at: Monotonic time at which the alert clears itself.
    """
    has_auto_captured: bool = False
    alert_active: bool = False
    alert_expires_at: Optional[float] = None


@dataclass(frozen=True)
class CaptureEvent:
    """
    A captured still frame.

    Attributes:
        image: Encoded image bytes.
        media_type: MIME type of ``image``.
        captured_at: Unix timestamp of the capture.
        automatic: True when raised by a trigger sighting, False for manual captures.
        trigger: The trigger detection that caused an automatic capture.
    """
    image: bytes
    media_type: str
    captured_at: float
    automatic: bool = True
    trigger: Optional[Detection] = None

    def to_dict(self) -> Dict[str, Any]:
        """Metadata only; image bytes are served separately."""
        return {
            "media_type": self.media_type,
            "captured_at": self.captured_at,
            "automatic": self.automatic,
            "size_bytes": len(self.image),
            "trigger": self.trigger.to_dict() if self.trigger else None,
        }
