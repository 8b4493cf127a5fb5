"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from .detection import ClassLabel

DEFAULT_CLASSES: Dict[int, ClassLabel] = {
    0: ClassLabel.SUBJECT,
    76: ClassLabel.TRIGGER,
}


@dataclass
class CameraConfig:
    """Frame source configuration."""
    backend: str = "opencv"
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [640, 480])
    fps: int = 30
    max_retries: int = 3

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            backend=d.get("backend", "opencv"),
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [640, 480]),
            fps=d.get("fps", 30),
            max_retries=d.get("max_retries", 3),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "max_retries": self.max_retries,
        }


@dataclass
class ModelConfig:
    """Inference model configuration."""
    path: str = "models/yolov8n.onnx"
    providers: List[str] = field(default_factory=lambda: ["CPUExecutionProvider"])
    warmup: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        return cls(
            path=d.get("path", "models/yolov8n.onnx"),
            providers=list(d.get("providers") or ["CPUExecutionProvider"]),
            warmup=d.get("warmup", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "providers": self.providers,
            "warmup": self.warmup,
        }


def parse_class_table(raw: Optional[Dict[Any, Any]]) -> Dict[int, ClassLabel]:
    """
    Convert a {class_index: label} mapping from YAML into typed form.

    Keys may arrive as strings (JSON) or ints (YAML). Unknown labels raise ValueError.
    """
    if not raw:
        return dict(DEFAULT_CLASSES)
    return {int(k): ClassLabel(str(v)) for k, v in raw.items()}


@dataclass
class DetectionConfig:
    """
    Detection pipeline configuration.

    Attributes:
        input_size: Side of the square model input (S).
        conf_threshold: Minimum class score for a candidate.
        iou_threshold: Overlap above which a lower-scored box is suppressed.
        interval_ms: Polling interval of the detection loop.
        classes: Monitored class indices and the role each one plays.
    """
    input_size: int = 640
    conf_threshold: float = 0.5
    iou_threshold: float = 0.4
    interval_ms: int = 500
    classes: Dict[int, ClassLabel] = field(default_factory=lambda: dict(DEFAULT_CLASSES))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            input_size=d.get("input_size", 640),
            conf_threshold=d.get("conf_threshold", 0.5),
            iou_threshold=d.get("iou_threshold", 0.4),
            interval_ms=d.get("interval_ms", 500),
            classes=parse_class_table(d.get("classes")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_size": self.input_size,
            "conf_threshold": self.conf_threshold,
            "iou_threshold": self.iou_threshold,
            "interval_ms": self.interval_ms,
            "classes": {k: v.value for k, v in self.classes.items()},
        }

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0

    @property
    def monitored_indices(self) -> Tuple[int, ...]:
        return tuple(self.classes.keys())


@dataclass
class CaptureConfig:
    """Auto-capture configuration."""
    enabled: bool = True
    alert_seconds: float = 5.0
    image_format: str = "png"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CaptureConfig":
        return cls(
            enabled=d.get("enabled", True),
            alert_seconds=d.get("alert_seconds", 5.0),
            image_format=d.get("image_format", "png"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "alert_seconds": self.alert_seconds,
            "image_format": self.image_format,
        }


@dataclass
class WebConfig:
    """Status/control API configuration."""
    enabled: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", False),
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 8000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "host": self.host, "port": self.port}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/detector.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            model=ModelConfig.from_dict(d.get("model", {}) or {}),
            detection=DetectionConfig.from_dict(d.get("detection", {}) or {}),
            capture=CaptureConfig.from_dict(d.get("capture", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            log_path=d.get("log_path", "logs/detector.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "camera": self.camera.to_dict(),
            "model": self.model.to_dict(),
            "detection": self.detection.to_dict(),
            "capture": self.capture.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
